"""Response Builder — projects context + payload into a content-negotiated wire response.

Invariants:
    - Media type = explicit override, else the context's negotiated preference
    - JSON and HAL share the {...data, _links?, _embedded?, _meta?} envelope;
      only the Content-Type differs
    - Status and headers are READ from the context, never written, except by
      handle_error() which sets both status and response explicitly
    - 204/304 responses carry no body
    - Every response built here, the default 204 and domain errors included,
      carries the context headers minus Content-Type

Design Decisions:
    - fastapi.encoders.jsonable_encoder before json.dumps: pydantic models,
      datetimes and UUIDs serialize without per-handler converters
    - HTML goes through an HtmlRenderer collaborator; render_html is only the
      fallback, not a templating engine
"""

import json
from collections.abc import Mapping
from typing import Any

from fastapi import Response, status
from fastapi.encoders import jsonable_encoder

from hyperroute.core.domain_types import MediaType
from hyperroute.core.errors import HyperrouteError
from hyperroute.core.hypermedia import (
    HtmlRenderer,
    build_envelope,
    normalize_links,
    render_error_page,
    render_html,
    render_links_html,
    render_meta_html,
)
from hyperroute.http.context import Context, set_response

_EMPTY_BODY_STATUSES = frozenset({status.HTTP_204_NO_CONTENT, status.HTTP_304_NOT_MODIFIED})


def _passthrough_headers(ctx: Context) -> dict[str, str]:
    """Context headers minus Content-Type, which follows the chosen media type."""
    return {k: v for k, v in ctx.headers.items() if k.lower() != "content-type"}


def _resolve_media_type(ctx: Context, override: MediaType | str | None) -> MediaType:
    chosen = MediaType(override) if override else ctx.preferred_media_type
    if chosen is MediaType.ANY:
        return ctx.settings.default_media_type
    return chosen


def _dumps(payload: Any) -> str:
    return json.dumps(jsonable_encoder(payload), ensure_ascii=False)


def _build(ctx: Context, content: str, status_code: int, media_type: MediaType) -> Response:
    if status_code in _EMPTY_BODY_STATUSES:
        content = ""
    return Response(
        content=content,
        status_code=status_code,
        headers=_passthrough_headers(ctx),
        media_type=media_type.value,
    )


def create_response(
    ctx: Context,
    data: Any,
    *,
    links: Mapping[str, Any] | None = None,
    embedded: Mapping[str, Any] | None = None,
    meta: Mapping[str, Any] | None = None,
    template: str | None = None,
    media_type: MediaType | str | None = None,
    renderer: HtmlRenderer | None = None,
) -> Response:
    """Serialize data (plus hypermedia envelope) for the negotiated media type.

    Args:
        ctx: Request context; status and headers are read from it.
        data: Resource representation. Mappings are merged into the envelope,
            anything else is wrapped under "data".
        links: Relation name -> href string or {href, templated, ...}.
        embedded: Related resources, emitted under "_embedded".
        meta: Free-form metadata, emitted under "_meta".
        template: HTML template passed to the renderer.
        media_type: Explicit override of content negotiation.
        renderer: HTML templating collaborator (defaults to render_html).
    """
    chosen = _resolve_media_type(ctx, media_type)
    status_code = ctx.status or status.HTTP_200_OK

    if chosen is MediaType.HTML:
        render = renderer or render_html
        markup = render(jsonable_encoder(data), template)
        cleaned = normalize_links(links)
        if cleaned:
            markup += render_links_html(cleaned)
        if meta:
            markup += render_meta_html(jsonable_encoder(meta))
        return _build(ctx, markup, status_code, chosen)

    envelope = build_envelope(
        jsonable_encoder(data),
        links=links,
        embedded=jsonable_encoder(embedded) if embedded else None,
        meta=meta,
    )
    return _build(ctx, _dumps(envelope), status_code, chosen)


def handle_error(
    ctx: Context, status_code: int, message: str, details: Any = None,
) -> Context:
    """Set status and a media-type-aware error response on ctx (overwrites)."""
    ctx.status = status_code
    chosen = ctx.preferred_media_type

    if chosen is MediaType.HTML:
        content = render_error_page(status_code, message, jsonable_encoder(details))
    else:
        payload: dict[str, Any] = {"error": message}
        if details is not None:
            payload["details"] = details
        if chosen is MediaType.HAL:
            payload["_links"] = {"help": {"href": ctx.settings.error_help_href}}
        content = _dumps(payload)

    return set_response(ctx, _build(ctx, content, status_code, chosen), overwrite=True)


def no_content(ctx: Context) -> Response:
    """Default 204 for handlers that set no response; keeps context headers."""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=_passthrough_headers(ctx))


def error_response(ctx: Context, exc: HyperrouteError) -> Response:
    """Render a client-facing HyperrouteError for the negotiated media type."""
    chosen = ctx.preferred_media_type

    if chosen is MediaType.HTML:
        content = render_error_page(exc.http_status, exc.message, {"code": exc.code})
    else:
        payload = exc.to_response()
        if chosen is MediaType.HAL:
            payload["_links"] = {"help": {"href": ctx.settings.error_help_href}}
        content = _dumps(payload)

    return _build(ctx, content, exc.http_status, chosen)
