"""Hypermedia — link relations, response envelopes and the minimal HTML renderer.

Invariants:
    - Envelope is {...data, _links?, _embedded?, _meta?}; non-mapping data is
      wrapped as {"data": data}
    - Links pass through unchanged (bare href string or {href, templated, ...});
      relations whose value is None are omitted
    - _links is emitted whenever links were given, even as an empty map
    - Rendered HTML escapes every interpolated value
"""

import html
import json
from collections.abc import Mapping
from typing import Any, NotRequired, Protocol, TypedDict


class Link(TypedDict):
    href: str
    templated: NotRequired[bool]
    method: NotRequired[str]
    title: NotRequired[str]


ResourceLinks = dict[str, "str | Link"]


class HtmlRenderer(Protocol):
    """Templating collaborator: turns data (+ optional template) into markup."""
    def __call__(self, data: Any, template: str | None = None) -> str: ...


def normalize_links(links: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop None relations; None input yields None."""
    if links is None:
        return None
    return {rel: value for rel, value in links.items() if value is not None}


def link_href(value: Any) -> str:
    """href of a bare-string or object link."""
    if isinstance(value, Mapping):
        return str(value.get("href", ""))
    return str(value)


def build_envelope(
    data: Any,
    links: Mapping[str, Any] | None = None,
    embedded: Mapping[str, Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge data with the hypermedia envelope keys."""
    envelope: dict[str, Any] = dict(data) if isinstance(data, Mapping) else {"data": data}
    links = normalize_links(links)
    if links is not None:
        envelope["_links"] = links
    if embedded:
        envelope["_embedded"] = dict(embedded)
    if meta:
        envelope["_meta"] = dict(meta)
    return envelope


def create_links(resource_path: str, resource_id: str) -> dict[str, str]:
    """Standard self/collection relations for a member resource."""
    collection = resource_path if resource_path.startswith("/") else f"/{resource_path}"
    collection = collection.rstrip("/") or "/"
    member = f"{collection.rstrip('/')}/{resource_id}"
    return {"self": member, "collection": collection}


def render_html(data: Any, template: str | None = None) -> str:
    """Default renderer: {{key}} substitution, or a <pre> dump without a template."""
    if template is None:
        dump = json.dumps(data, indent=2, default=str, ensure_ascii=False)
        return (
            "<fragment>\n"
            "  <h1>Response Data</h1>\n"
            f"  <pre>{html.escape(dump)}</pre>\n"
            "</fragment>"
        )

    values = data if isinstance(data, Mapping) else {"value": data}
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{{" + str(key) + "}}", html.escape(str(value)))
    return rendered


def render_links_html(links: Mapping[str, Any]) -> str:
    items = "".join(
        f'\n      <li><a href="{html.escape(link_href(value), quote=True)}">'
        f"{html.escape(rel)}</a></li>"
        for rel, value in links.items()
    )
    return f'\n  <div class="links">\n    <h2>Links</h2>\n    <ul>{items}\n    </ul>\n  </div>'


def render_meta_html(meta: Mapping[str, Any]) -> str:
    dump = json.dumps(meta, indent=2, default=str, ensure_ascii=False)
    return f'\n  <div class="meta">\n    <h2>Metadata</h2>\n    <pre>{html.escape(dump)}</pre>\n  </div>'


def render_error_page(status_code: int, message: str, details: Any = None) -> str:
    """Standalone HTML error document."""
    body = ""
    if details is not None:
        dump = json.dumps(details, indent=2, default=str, ensure_ascii=False)
        body = f"\n  <h2>Details</h2>\n  <pre>{html.escape(dump)}</pre>"
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        '  <meta charset="UTF-8">\n'
        f"  <title>Error {status_code}</title>\n"
        "</head>\n<body>\n"
        f'  <h1 class="error">Error {status_code}</h1>\n'
        f"  <p>{html.escape(message)}</p>{body}\n"
        "</body>\n</html>"
    )
