"""Router — two-tier (static table + ordered patterns) route resolution.

Invariants:
    - Static tier is consulted first: exact (method, path) key, O(1) lookup
    - Dynamic tier is scanned in registration order; first match wins
    - A route registered under ANY_METHOD ('*') matches every verb, after the
      verb-specific entry of the same tier
    - A built Router is read-only; registration happens on RouterBuilder only

Design Decisions:
    - Builder/frozen split over a lock: registration is a startup phase, request
      handling only reads (ADR: no locking on the hot path)
    - Hand-compiled regex per pattern over a routing library: ':name' and '*'
      are the whole grammar
    - Re-registration follows ConflictPolicy: OVERWRITE replaces the entry in
      place (dynamic routes keep their original precedence), ERROR raises
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from hyperroute.core.domain_types import ANY_METHOD, ConflictPolicy
from hyperroute.core.errors import RouteConflictError

_TOKEN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)|\*")


@dataclass(frozen=True)
class Route:
    """Immutable route: verb, path template and handler."""
    method: str
    path: str
    handler: Callable[..., Any]
    pattern: re.Pattern | None = None
    # (regex group name, param key) pairs, in path order
    groups: tuple[tuple[str, str], ...] = ()

    @property
    def is_static(self) -> bool:
        return self.pattern is None

    def extract(self, path: str) -> dict[str, str] | None:
        """Return path params if this dynamic route matches path."""
        if self.pattern is None:
            return {} if path == self.path else None
        found = self.pattern.fullmatch(path)
        if found is None:
            return None
        return {key: found.group(group) for group, key in self.groups}


@dataclass(frozen=True)
class RouteMatch:
    """Successful resolution: the handler plus captured path params."""
    route: Route
    params: dict[str, str] = field(default_factory=dict)

    @property
    def handler(self) -> Callable[..., Any]:
        return self.route.handler


class NoMatch:
    """Sentinel outcome for an unroutable request."""
    _instance: "NoMatch | None" = None

    def __new__(cls) -> "NoMatch":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MATCH"

    def __bool__(self) -> bool:
        return False


NO_MATCH = NoMatch()

RouteOutcome = RouteMatch | NoMatch


def is_dynamic_path(path: str) -> bool:
    """Paths carrying ':name' or '*' tokens go to the pattern tier."""
    return ":" in path or "*" in path


def compile_path(path: str) -> tuple[re.Pattern, tuple[tuple[str, str], ...]]:
    """Compile '/docs/:id/*' into a full-match regex and its group mapping.

    Named segments match one path segment; '*' matches the rest of the path
    (including slashes) and is exposed under positional keys '0', '1', ...
    """
    parts: list[str] = []
    groups: list[tuple[str, str]] = []
    seen: set[str] = set()
    wildcard = 0
    cursor = 0

    for token in _TOKEN.finditer(path):
        parts.append(re.escape(path[cursor:token.start()]))
        name = token.group(1)
        if name is not None:
            if name in seen:
                raise ValueError(f"Duplicate path parameter ':{name}' in {path!r}")
            seen.add(name)
            group = f"p_{name}"
            parts.append(f"(?P<{group}>[^/]+)")
            groups.append((group, name))
        else:
            group = f"w_{wildcard}"
            parts.append(f"(?P<{group}>.*)")
            groups.append((group, str(wildcard)))
            wildcard += 1
        cursor = token.end()

    parts.append(re.escape(path[cursor:]))
    return re.compile("".join(parts)), tuple(groups)


class Router:
    """Frozen route table. Build with RouterBuilder."""

    __slots__ = ("_static", "_dynamic")

    def __init__(
        self,
        static: Mapping[str, Mapping[str, Route]],
        dynamic: tuple[Route, ...],
    ) -> None:
        self._static = MappingProxyType(
            {method: MappingProxyType(dict(paths)) for method, paths in static.items()},
        )
        self._dynamic = dynamic

    @property
    def routes(self) -> list[Route]:
        """All routes: static first, then dynamic in precedence order."""
        static = [route for paths in self._static.values() for route in paths.values()]
        return static + list(self._dynamic)

    def match(self, method: str, path: str) -> RouteOutcome:
        """Resolve (method, path) to a RouteMatch, or NO_MATCH."""
        method = method.upper()
        for candidate in (method, ANY_METHOD):
            paths = self._static.get(candidate)
            if paths is not None:
                route = paths.get(path)
                if route is not None:
                    return RouteMatch(route=route)

        for route in self._dynamic:
            if route.method not in (method, ANY_METHOD):
                continue
            params = route.extract(path)
            if params is not None:
                return RouteMatch(route=route, params=params)

        return NO_MATCH


class RouterBuilder:
    """Mutable registration phase of the router."""

    def __init__(self, conflict_policy: ConflictPolicy = ConflictPolicy.OVERWRITE) -> None:
        self.conflict_policy = ConflictPolicy(conflict_policy)
        self._static: dict[str, dict[str, Route]] = {}
        self._dynamic: list[Route] = []

    def add(self, method: str, path: str, handler: Callable[..., Any]) -> Route:
        """Register handler for (method, path) and return the stored Route."""
        method = method.upper()
        if not path.startswith("/"):
            path = "/" + path

        if not is_dynamic_path(path):
            table = self._static.setdefault(method, {})
            if path in table and self.conflict_policy is ConflictPolicy.ERROR:
                raise RouteConflictError(method, path)
            route = Route(method=method, path=path, handler=handler)
            table[path] = route
            return route

        pattern, groups = compile_path(path)
        route = Route(
            method=method, path=path, handler=handler,
            pattern=pattern, groups=groups,
        )
        for index, existing in enumerate(self._dynamic):
            if existing.method == method and existing.path == path:
                if self.conflict_policy is ConflictPolicy.ERROR:
                    raise RouteConflictError(method, path)
                self._dynamic[index] = route
                return route
        self._dynamic.append(route)
        return route

    def build(self) -> Router:
        """Snapshot the registrations into a read-only Router."""
        return Router(self._static, tuple(self._dynamic))
