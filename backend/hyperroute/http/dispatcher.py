"""Dispatcher — per-request orchestration of context, pipeline, router and handler.

Invariants:
    - Order: build context -> middleware pipeline -> route continuation -> response
    - The route continuation is the pipeline's terminal step; it is skipped when a
      middleware already set ctx.response or never called next()
    - No route match -> 404 via handle_error(); handler sets no response -> 204
      that still carries the context headers
    - HyperrouteError below 500 -> its own status and to_response() body, rendered
      for the negotiated media type with the context headers
    - Anything else is caught ONCE here: 500 (503 for TimeoutError) with a
      correlation id; no exception text or stack reaches the client

Design Decisions:
    - Dispatcher holds a frozen Router and a pre-composed middleware tuple: no
      registration state is read on the request path
    - Handlers may be sync or async; awaitables are awaited
"""

import inspect
import logging
import time
import uuid
from typing import Sequence

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from hyperroute.config import Settings
from hyperroute.core.errors import ErrorSeverity, HyperrouteError
from hyperroute.core.pipeline import Middleware, compose
from hyperroute.core.result import Ok
from hyperroute.core.routing import NoMatch, RouteMatch, Router
from hyperroute.http.context import Context, build_context
from hyperroute.http.responses import error_response, handle_error, no_content

logger = logging.getLogger(__name__)


def route_path(request: Request) -> str:
    """Request path relative to the app's mount point."""
    path = request.scope.get("path", "/")
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path):]
    return path or "/"


class Dispatcher:
    """Turns a Request into a Response through the middleware chain and router."""

    def __init__(
        self,
        router: Router,
        middlewares: Sequence[Middleware],
        settings: Settings,
        error_logger: logging.Logger | None = None,
    ) -> None:
        self.router = router
        self.settings = settings
        self._logger = error_logger or logger
        self._pipeline = compose(tuple(middlewares), self._dispatch_route)

    async def _dispatch_route(self, ctx: Context) -> None:
        if ctx.response is not None:
            return

        outcome = self.router.match(ctx.request.method, route_path(ctx.request))
        match outcome:
            case NoMatch():
                handle_error(ctx, status.HTTP_404_NOT_FOUND, "Not Found")
            case RouteMatch(route=route, params=params):
                ctx.validated.params = Ok(params)
                result = route.handler(ctx)
                if inspect.isawaitable(result):
                    await result

    async def handle(self, request: Request) -> Response:
        """Process one request; never raises (except cancellation)."""
        started = time.perf_counter()
        correlation_id = str(uuid.uuid4())
        ctx: Context | None = None
        try:
            ctx = await build_context(request, self.settings)
            await self._pipeline(ctx)
            response = ctx.response or no_content(ctx)
        except HyperrouteError as exc:
            response = self._domain_error(request, ctx, exc, correlation_id)
        except TimeoutError:
            self._logger.error(
                f"Request timed out on {request.url.path}",
                extra={"correlation_id": correlation_id, "method": request.method,
                       "path": request.url.path},
            )
            response = failure_response(
                self.settings, status.HTTP_503_SERVICE_UNAVAILABLE, "SERVICE_UNAVAILABLE",
                "The request did not complete in time", correlation_id,
            )
        except Exception as exc:
            self._log_unhandled(request, exc, correlation_id)
            response = internal_error_response(self.settings, correlation_id)

        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response

    def _domain_error(
        self,
        request: Request,
        ctx: Context | None,
        exc: HyperrouteError,
        correlation_id: str,
    ) -> Response:
        if exc.http_status >= 500:
            self._log_unhandled(request, exc, correlation_id)
            return internal_error_response(self.settings, correlation_id)

        exc.context.correlation_id = correlation_id
        exc.context.method = request.method
        exc.context.path = request.url.path
        self._logger.warning(
            f"HyperrouteError: {exc.message}",
            extra={"error_code": exc.code, "correlation_id": correlation_id,
                   "path": request.url.path},
        )
        if ctx is None:
            return JSONResponse(status_code=exc.http_status, content=exc.to_response())
        return error_response(ctx, exc)

    def _log_unhandled(self, request: Request, exc: Exception, correlation_id: str) -> None:
        self._logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=exc,
            extra={"correlation_id": correlation_id, "method": request.method,
                   "path": request.url.path},
        )


def failure_response(
    settings: Settings, status_code: int, code: str, message: str, correlation_id: str,
) -> Response:
    """Opaque error body: code, message and correlation id, nothing from the exception."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "severity": ErrorSeverity.CRITICAL.value,
                "correlation_id": correlation_id,
            },
        },
        headers={settings.correlation_header: correlation_id},
    )


def internal_error_response(settings: Settings, correlation_id: str) -> Response:
    return failure_response(
        settings, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR",
        "An unexpected error occurred", correlation_id,
    )
