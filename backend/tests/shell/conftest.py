"""Shell test fixtures — raw requests and an in-process ASGI client.

Invariants:
    - make_request builds a Starlette Request without a server
    - make_client drives an App through httpx's ASGITransport

Design Decisions:
    - ASGITransport skips lifespan: apps freeze on the first request, which is
      exactly the path production traffic takes without a lifespan-aware server
"""

import pytest
from fastapi import Request
from httpx import ASGITransport, AsyncClient

from hyperroute import App


@pytest.fixture
def make_request():
    def _make(
        method: str = "GET",
        path: str = "/",
        body: bytes = b"",
        headers: dict[str, str] | None = None,
        query: str = "",
        root_path: str = "",
    ) -> Request:
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "server": ("test", 80),
            "path": path,
            "raw_path": path.encode(),
            "root_path": root_path,
            "query_string": query.encode(),
            "headers": [
                (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
            ],
        }

        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return _make


@pytest.fixture
def app(settings) -> App:
    return App(settings=settings)


@pytest.fixture
def make_client():
    def _make(app: App) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    return _make
