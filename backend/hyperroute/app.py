"""App — registration surface and ASGI entry point of the kernel.

Invariants:
    - Registration (use, get/post/..., workflow) happens before freeze()
    - freeze() runs once, explicitly, on ASGI lifespan startup, or on the first
      request; afterwards routes, middleware and workflow definitions are read-only
    - A failed freeze never escapes to the ASGI server: requests get the opaque 500
    - Middleware run in registration order (first registered = outermost)

Design Decisions:
    - Builder state lives on App, the frozen Dispatcher is created by freeze()
      (ADR: no locking on the hot path)
    - Verb methods double as decorators when called without a handler, the
      way FastAPI routers register endpoints
"""

import logging
import uuid
from typing import Any, Callable

from fastapi import Request, Response

from hyperroute.config import Settings, get_settings
from hyperroute.core.errors import ConfigurationError, RegistryFrozenError
from hyperroute.core.pipeline import Middleware
from hyperroute.core.routing import Router, RouterBuilder
from hyperroute.http.dispatcher import Dispatcher, internal_error_response
from hyperroute.infrastructure.observability import configure_logging
from hyperroute.workflow_engine import WorkflowEngine

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class App:
    """Hypermedia request kernel. Instances are ASGI applications."""

    def __init__(
        self,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._error_logger = logger
        self._middlewares: list[Middleware] = []
        self._routes = RouterBuilder(self.settings.route_conflict_policy)
        self._workflows: list[WorkflowEngine] = []
        self._dispatcher: Dispatcher | None = None
        self._freeze_failure_logged = False

    # --- Registration ---------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._dispatcher is not None

    def _ensure_mutable(self, what: str) -> None:
        if self.frozen:
            raise RegistryFrozenError(what)

    def use(self, middleware: Middleware) -> "App":
        """Append a middleware: async (ctx, next) -> None."""
        self._ensure_mutable("middleware")
        self._middlewares.append(middleware)
        return self

    def route(self, method: str, path: str, handler: Handler | None = None) -> Any:
        """Register handler for (method, path); without handler, return a decorator."""
        if handler is None:
            def decorator(fn: Handler) -> Handler:
                self.route(method, path, fn)
                return fn
            return decorator

        self._ensure_mutable("routes")
        self._routes.add(method, path, handler)
        return self

    def get(self, path: str, handler: Handler | None = None) -> Any:
        return self.route("GET", path, handler)

    def post(self, path: str, handler: Handler | None = None) -> Any:
        return self.route("POST", path, handler)

    def put(self, path: str, handler: Handler | None = None) -> Any:
        return self.route("PUT", path, handler)

    def patch(self, path: str, handler: Handler | None = None) -> Any:
        return self.route("PATCH", path, handler)

    def delete(self, path: str, handler: Handler | None = None) -> Any:
        return self.route("DELETE", path, handler)

    def workflow(self, name: str = "workflow") -> WorkflowEngine:
        """New workflow engine whose handlers register on this app."""
        self._ensure_mutable("workflows")
        engine = WorkflowEngine(self.route, name=name)
        self._workflows.append(engine)
        return engine

    # --- Serving --------------------------------------------------------------

    @property
    def router(self) -> Router:
        return self.freeze().router

    def freeze(self) -> Dispatcher:
        """Finalize registrations into the read-only Dispatcher (idempotent)."""
        if self._dispatcher is None:
            for engine in self._workflows:
                engine.freeze()
            router = self._routes.build()
            self._dispatcher = Dispatcher(
                router, tuple(self._middlewares), self.settings, self._error_logger,
            )
            logger.info(f"App frozen with {len(router.routes)} routes")
        return self._dispatcher

    async def handle(self, request: Request) -> Response:
        """Dispatch one request and return its Response.

        A configuration error surfacing at freeze time answers every request
        with the opaque 500; the full error is logged once.
        """
        try:
            dispatcher = self.freeze()
        except ConfigurationError as exc:
            correlation_id = str(uuid.uuid4())
            if not self._freeze_failure_logged:
                logger.error(
                    f"App cannot serve requests: {exc.message}",
                    exc_info=exc,
                    extra={"correlation_id": correlation_id, "error_code": exc.code},
                )
                self._freeze_failure_logged = True
            else:
                logger.warning(
                    f"Request refused, app not frozen: {exc.code}",
                    extra={"correlation_id": correlation_id, "path": request.url.path},
                )
            return internal_error_response(self.settings, correlation_id)
        return await dispatcher.handle(request)

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] == "http":
            request = Request(scope, receive)
            response = await self.handle(request)
            await response(scope, receive, send)
        elif scope["type"] == "lifespan":
            await self._lifespan(receive, send)
        elif scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1000})

    async def _lifespan(self, receive: Callable, send: Callable) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    configure_logging(self.settings)
                    self.freeze()
                except Exception as exc:
                    logger.error(f"Startup failed: {exc}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
