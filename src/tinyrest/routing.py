"""Pattern compilation and the ordered route table.

Patterns look like ``/users/:id/posts/*``:

* literal segments are matched case-insensitively,
* ``:name`` matches exactly one non-empty segment of word characters or
  hyphens and binds it to ``name``,
* a trailing ``*`` matches one or more remaining segments (dots allowed).

A pattern and the same pattern with a trailing slash are equivalent, and so
are the paths ``/users`` and ``/users/``.
"""

import logging
import re
import typing as t
from dataclasses import dataclass, field

from .errors import PatternError
from .util import normalize_path

logger = logging.getLogger(__name__)

_VALID_CHARS = re.compile(r"[A-Za-z0-9_\-/:*]+")
_VAR_RE = r"[\w-]+"
_WILDCARD_RE = r"[\w./-]+"


def normalize_pattern(pattern: str) -> str:
    return normalize_path(pattern)


def validate_pattern(pattern: str) -> None:
    """Raise PatternError unless ``pattern`` (already normalized) is usable."""
    if not _VALID_CHARS.fullmatch(pattern):
        raise PatternError(f"pattern contains invalid characters: {pattern!r}")
    last = len(pattern) - 1
    for i, c in enumerate(pattern):
        if c == ":":
            if i == 0 or pattern[i - 1] != "/":
                raise PatternError(
                    f"a variable was not alone in its segment: {pattern!r}")
            if pattern[i + 1] == "/":
                raise PatternError(f"variable without a name: {pattern!r}")
        elif c == "*" and (i != last - 1 or pattern[i - 1] != "/"):
            raise PatternError(f"wildcard must be the last segment: {pattern!r}")


def _segment_re(segment: str) -> str:
    if segment.startswith(":"):
        return _VAR_RE
    if segment == "*":
        return _WILDCARD_RE
    return re.escape(segment.lower())


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Validate a pattern and compile it into an anchored matcher."""
    pattern = normalize_pattern(pattern)
    validate_pattern(pattern)
    segments = pattern[1:-1].split("/") if pattern != "/" else []
    body = "/".join(_segment_re(s) for s in segments)
    regex = rf"^/{body}/?\Z" if segments else r"^/?\Z"
    return re.compile(regex, re.IGNORECASE | re.ASCII)


def extract_params(pattern: str, path: str) -> list[tuple[str, str]]:
    """Bind each ``:name`` segment of ``pattern`` to the same segment of ``path``.

    The path must already be known to match the pattern.
    """
    path_parts = normalize_path(path).split("/")
    return [(seg[1:], path_parts[i])
            for i, seg in enumerate(normalize_pattern(pattern).split("/"))
            if seg.startswith(":")]


@dataclass(frozen=True)
class Route:
    method: str
    pattern: str
    handler: t.Any
    matcher: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'method', self.method.upper())
        object.__setattr__(self, 'pattern', normalize_pattern(self.pattern))
        object.__setattr__(self, 'matcher', compile_pattern(self.pattern))

    def matches(self, method: str, path: str) -> bool:
        return ((not self.method or self.method == method)
                and self.matcher.fullmatch(path) is not None)

    def extract_params(self, path: str) -> list[tuple[str, str]]:
        return extract_params(self.pattern, path)


class RouteTable:
    """Routes in registration order. The first matching route wins.

    Nothing is ever removed or reordered, so once registration is done the
    table can be dispatched against from any number of threads.
    """

    def __init__(self):
        self._routes: list[Route] = []

    def register(self, route: Route) -> None:
        logger.debug("route %s %s -> %r", route.method or "*",
                     route.pattern, route.handler)
        self._routes.append(route)

    def extend(self, routes: t.Iterable[Route]) -> None:
        for route in routes:
            self.register(route)

    def dispatch(self, method: str, path: str) -> Route | None:
        for route in self._routes:
            if route.matches(method, path):
                return route
        return None

    def __iter__(self) -> t.Iterator[Route]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
