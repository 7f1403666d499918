"""Middleware Pipeline — folds middleware and a terminal step into one continuation chain.

Invariants:
    - Folding is right-to-left: the last-registered middleware wraps the terminal step
    - Not calling next() ends the chain there: downstream middleware and the handler never run
    - Each next() may be awaited at most once; a second call raises MiddlewareChainError
    - Middleware run sequentially within one request, never in parallel

Design Decisions:
    - Closure per layer over an index-walking dispatcher: each next() owns its own
      single-call flag, so the guard cannot be confused by nested chains
"""

from typing import Any, Awaitable, Callable, Sequence

from hyperroute.core.errors import MiddlewareChainError

Next = Callable[[], Awaitable[None]]
Middleware = Callable[[Any, Next], Awaitable[None]]
Terminal = Callable[[Any], Awaitable[None]]


def _layer(middleware: Middleware, ctx: Any, inner: Next) -> Next:
    async def step() -> None:
        called = False

        async def next_() -> None:
            nonlocal called
            if called:
                raise MiddlewareChainError()
            called = True
            await inner()

        await middleware(ctx, next_)

    return step


def compose(
    middlewares: Sequence[Middleware],
    terminal: Terminal | None = None,
) -> Callable[[Any], Awaitable[None]]:
    """Compose middlewares (outermost first) around an optional terminal step."""
    chain = tuple(middlewares)

    async def run(ctx: Any) -> None:
        async def end() -> None:
            if terminal is not None:
                await terminal(ctx)

        step: Next = end
        for middleware in reversed(chain):
            step = _layer(middleware, ctx, step)
        await step()

    return run
