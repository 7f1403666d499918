"""HTTP Shell — ASGI-facing context, responses and dispatch built on FastAPI primitives."""
