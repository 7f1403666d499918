"""Content Negotiation — picks the response media type from an Accept header.

Invariants:
    - Candidates are ranked by q-value, highest first; ties keep header order
    - Only JSON, HAL and HTML are ever selected; */* maps to the default
    - Missing or unparseable headers yield the default media type
"""

from hyperroute.core.domain_types import MediaType

_SELECTABLE = (MediaType.HAL, MediaType.HTML, MediaType.JSON)


def _quality(params: list[str]) -> float:
    for param in params:
        name, _, value = param.strip().partition("=")
        if name.strip().lower() == "q":
            try:
                return float(value)
            except ValueError:
                return 0.0
    return 1.0


def parse_accept_header(
    accept: str | None, default: MediaType = MediaType.JSON,
) -> MediaType:
    """Return the preferred media type for an Accept header value."""
    if not accept:
        return default

    candidates = []
    for entry in accept.split(","):
        media, *params = entry.strip().split(";")
        candidates.append((media.strip().lower(), _quality(params)))
    # stable: equal q-values keep header order
    candidates.sort(key=lambda c: c[1], reverse=True)

    for media, quality in candidates:
        if quality <= 0:
            continue
        if media == MediaType.ANY.value:
            return default
        for selectable in _SELECTABLE:
            if media == selectable.value:
                return selectable

    return default
