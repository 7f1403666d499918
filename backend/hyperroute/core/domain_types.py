"""Domain Types — enums and aliases shared across the kernel.

Invariants:
    - Media types, methods and conflict policies are Enums, never raw string literals
    - Workflow states may be str or int; events are always str

Design Decisions:
    - str Enums: compare equal to the header/verb strings they encode (ADR: no converters at the boundary)
"""

from enum import Enum
from typing import TypeAlias


# ─── HTTP ────────────────────────────────────────────────────────

class MediaType(str, Enum):
    """Media types understood by content negotiation."""
    JSON = "application/json"
    HAL = "application/hal+json"
    HTML = "text/html"
    ANY = "*/*"


class HttpMethod(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


# Route registered under this method matches every verb
ANY_METHOD = "*"

# Methods whose body is never parsed
BODILESS_METHODS = frozenset({HttpMethod.GET.value, HttpMethod.HEAD.value})


class ConflictPolicy(str, Enum):
    """What happens when (method, path) is registered twice."""
    OVERWRITE = "overwrite"
    ERROR = "error"


# ─── Workflow ────────────────────────────────────────────────────

State: TypeAlias = str | int
Event: TypeAlias = str
