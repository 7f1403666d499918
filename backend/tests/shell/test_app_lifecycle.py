"""App — tests for registration, freezing and the ASGI scopes.

Tests cover:
    - Verb methods with and without decorator form
    - Conflict policy taken from settings
    - Registration rejected once frozen
    - Lifespan startup/shutdown, startup failure, websocket refusal
"""

import logging

import pytest

from hyperroute import App
from hyperroute.core.errors import RegistryFrozenError, RouteConflictError


@pytest.mark.asyncio
async def test_decorator_registration(app, make_client):
    @app.patch("/items/:id")
    async def update(ctx):
        ctx.respond({"updated": ctx.params["id"]})

    async with make_client(app) as client:
        response = await client.patch("/items/7")
    assert response.json() == {"updated": "7"}
    assert update.__name__ == "update"


@pytest.mark.asyncio
async def test_overwrite_policy_keeps_last_handler(app, make_client):
    app.get("/v", lambda ctx: ctx.respond({"v": 1}))
    app.get("/v", lambda ctx: ctx.respond({"v": 2}))
    async with make_client(app) as client:
        assert (await client.get("/v")).json() == {"v": 2}


def test_error_policy_rejects_duplicates(settings):
    settings.route_conflict_policy = "error"
    app = App(settings=settings)
    app.get("/v", lambda ctx: None)
    with pytest.raises(RouteConflictError):
        app.get("/v", lambda ctx: None)


@pytest.mark.asyncio
async def test_registration_after_first_request_is_rejected(app, make_client):
    app.get("/", lambda ctx: None)
    async with make_client(app) as client:
        await client.get("/")

    assert app.frozen
    with pytest.raises(RegistryFrozenError):
        app.get("/late", lambda ctx: None)
    with pytest.raises(RegistryFrozenError):
        app.use(lambda ctx, next: next())
    with pytest.raises(RegistryFrozenError):
        app.workflow()


def test_freeze_is_idempotent(app):
    app.get("/a", lambda ctx: None)
    dispatcher = app.freeze()
    assert app.freeze() is dispatcher
    assert len(app.router.routes) == 1


async def _drive_lifespan(app):
    inbox = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
    sent = []

    async def receive():
        return inbox.pop(0)

    async def send(message):
        sent.append(message)

    await app({"type": "lifespan"}, receive, send)
    return [m["type"] for m in sent]


@pytest.mark.asyncio
async def test_lifespan_freezes_on_startup(app):
    app.get("/", lambda ctx: None)
    assert await _drive_lifespan(app) == [
        "lifespan.startup.complete", "lifespan.shutdown.complete",
    ]
    assert app.frozen


@pytest.mark.asyncio
async def test_lifespan_reports_startup_failure(app):
    app.workflow("orphan").create_handler("/orphan", lambda ctx: None)
    assert await _drive_lifespan(app) == ["lifespan.startup.failed"]
    assert not app.frozen


@pytest.mark.asyncio
async def test_websocket_scope_is_closed(app):
    sent = []

    async def receive():
        return {"type": "websocket.connect"}

    async def send(message):
        sent.append(message)

    await app({"type": "websocket"}, receive, send)
    assert sent == [{"type": "websocket.close", "code": 1000}]


@pytest.mark.asyncio
async def test_failed_freeze_answers_opaque_500_and_logs_once(app, make_client, caplog):
    app.workflow("orphan").create_handler("/orphan", lambda ctx: None)
    caplog.set_level(logging.WARNING, logger="hyperroute")
    async with make_client(app) as client:
        first = await client.get("/orphan")
        second = await client.get("/orphan")

    for response in (first, second):
        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["correlation_id"] == response.headers["x-correlation-id"]
        assert "orphan" not in response.text
    assert not app.frozen
    assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 1
