"""Request Context — per-request carrier of parsed input, validation results and the response.

Invariants:
    - build_context() is total: parse failures are recorded as Err, never raised
    - GET/HEAD bodies are never read; validated.body is Ok(None) for them
    - validated.params starts as Ok({}) and is replaced once the route resolves
    - Once ctx.response is set, set_response() refuses to replace it unless
      overwrite=True is passed

Design Decisions:
    - One mutable dataclass per request over rebuilding per step: middleware
      mutate status/headers/state/response in place
    - Headers start with Content-Type = negotiated media type; the response
      builder re-derives the final Content-Type from the chosen media type
"""

import json
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request, Response

from hyperroute.config import Settings, get_settings
from hyperroute.core.domain_types import BODILESS_METHODS, MediaType
from hyperroute.core.errors import ResponseAlreadySetError
from hyperroute.core.negotiation import parse_accept_header
from hyperroute.core.result import Err, Ok, ValidationResult
from hyperroute.core.validation import STRING_MAP, validate
from hyperroute.core.workflow import WorkflowInstance

JSON_MEDIA_TYPES = frozenset({MediaType.JSON.value, MediaType.HAL.value})


def _empty_params() -> ValidationResult[dict[str, str]]:
    return Ok({})


@dataclass
class Validated:
    """The four independent validation outcomes of a request."""
    body: ValidationResult[Any] = field(default_factory=lambda: Ok(None))
    params: ValidationResult[dict[str, str]] = field(default_factory=_empty_params)
    query: ValidationResult[dict[str, str]] = field(default_factory=_empty_params)
    headers: ValidationResult[dict[str, str]] = field(default_factory=_empty_params)


@dataclass
class Context:
    """Per-request state passed by reference through middleware and handler."""
    request: Request
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)
    response: Response | None = None
    preferred_media_type: MediaType = MediaType.JSON
    validated: Validated = field(default_factory=Validated)
    workflow: WorkflowInstance | None = None
    settings: Settings = field(default_factory=get_settings)

    @property
    def params(self) -> dict[str, str]:
        """Resolved path params (empty until routing)."""
        match self.validated.params:
            case Ok(value=value):
                return value
            case _:
                return {}

    @property
    def query(self) -> dict[str, str]:
        match self.validated.query:
            case Ok(value=value):
                return value
            case _:
                return {}

    def respond(self, data: Any, **options: Any) -> Response:
        """Build a response from data and set it on the context."""
        from hyperroute.http.responses import create_response

        response = create_response(self, data, **options)
        set_response(self, response)
        return response


def set_header(ctx: Context, key: str, value: str) -> Context:
    """Set a response header on the context; returns ctx for chaining."""
    ctx.headers[key] = value
    return ctx


def set_response(ctx: Context, response: Response, *, overwrite: bool = False) -> Context:
    """Set ctx.response.

    Raises:
        ResponseAlreadySetError: a response is already set and overwrite is False.
    """
    if ctx.response is not None and not overwrite:
        raise ResponseAlreadySetError()
    ctx.response = response
    return ctx


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


async def read_body(request: Request) -> ValidationResult[Any]:
    """Parse the request body as JSON into a ValidationResult."""
    if request.method.upper() in BODILESS_METHODS:
        return Ok(None)

    raw = await request.body()
    if not raw:
        return Ok(None)

    media = _media_type(request.headers.get("content-type", ""))
    if media not in JSON_MEDIA_TYPES and not media.endswith("+json"):
        return Err([f"Unsupported content type: {media or 'none'}"])

    try:
        return Ok(json.loads(raw))
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, UnicodeDecodeError and over-deep nesting
        return Err([str(exc)])


async def build_context(request: Request, settings: Settings | None = None) -> Context:
    """Construct the Context for a raw request."""
    settings = settings or get_settings()
    preferred = parse_accept_header(
        request.headers.get("accept"), settings.default_media_type,
    )
    validated = Validated(
        query=validate(STRING_MAP, dict(request.query_params)),
        headers=validate(STRING_MAP, dict(request.headers)),
        body=await read_body(request),
    )
    return Context(
        request=request,
        headers={"Content-Type": preferred.value},
        preferred_media_type=preferred,
        validated=validated,
        settings=settings,
    )
