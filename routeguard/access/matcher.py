"""Resolve a path to the resource that governs it."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Tuple

from routeguard.access.common import AccessPath
from routeguard.access.resource import AccessResource, PathPattern, ResourcePattern
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PathMatch:
    """Result of matching one pattern against a pathname."""

    pattern: PathPattern
    pathname: str
    params: Dict[str, Optional[str]] = field(default_factory=dict)


@lru_cache(maxsize=1024)
def compile_path(path: str, case_sensitive: bool = False, end: bool = True) -> Tuple[Pattern[str], Tuple[str, ...]]:
    """Compile a router-style pattern into a regular expression.

    ``:name`` captures one segment (``:name?`` makes it optional) and a trailing
    ``*`` captures the rest of the path under the ``*`` key.
    """

    names: List[str] = []
    body = re.sub(r"/*\*?$", "", path)
    body = re.sub(r"^/*", "/", body)
    source = "^"
    for segment in body.split("/")[1:]:
        if segment.startswith(":"):
            optional = segment.endswith("?")
            names.append(segment[1:-1] if optional else segment[1:])
            source += r"/?([^/]+)?" if optional else r"/([^/]+)"
        else:
            source += "/" + re.escape(segment)

    if path.endswith("*"):
        names.append("*")
        source += r"(.*)$" if path in ("*", "/*") else r"(?:/(.+)|/*)$"
    elif end:
        source += r"/*$"
    elif path not in ("", "/"):
        source += r"(?:(?=/|$))"

    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(source, flags), tuple(names)


def match_path(pattern: ResourcePattern, pathname: str) -> Optional[PathMatch]:
    """Match ``pathname`` against ``pattern``; ``None`` when it does not match."""

    if isinstance(pattern, str):
        pattern = PathPattern(path=pattern)
    regex, names = compile_path(pattern.path, pattern.case_sensitive, pattern.end)
    found = regex.match(pathname)
    if found is None:
        return None
    params = dict(zip(names, found.groups()))
    return PathMatch(pattern=pattern, pathname=found.group(0), params=params)


MatchFunc = Callable[[ResourcePattern, str], Optional[PathMatch]]


def join_basename(basename: str, pattern: ResourcePattern) -> ResourcePattern:
    prefix = basename.rstrip("/")
    if isinstance(pattern, PathPattern):
        return PathPattern(
            path=prefix + pattern.path,
            case_sensitive=pattern.case_sensitive,
            end=pattern.end,
        )
    return prefix + pattern


class AccessMatcher:
    """First-match-wins resolution over an ordered resource registry.

    Resolved resources are cached per pathname. The cache is dropped whenever
    the registry or the registry-wide basename changes; anything else that
    affects matching (for instance rebinding a resource's own basename) must
    be followed by :meth:`invalidate`.
    """

    def __init__(
        self,
        resources: Iterable[AccessResource] = (),
        *,
        basename: Optional[str] = None,
        match_func: MatchFunc = match_path,
    ) -> None:
        self._resources: List[AccessResource] = list(resources)
        self._basename = basename
        self._match_func = match_func
        self._cache: Dict[str, AccessResource] = {}

    @property
    def resources(self) -> Tuple[AccessResource, ...]:
        return tuple(self._resources)

    @property
    def basename(self) -> Optional[str]:
        return self._basename

    @basename.setter
    def basename(self, value: Optional[str]) -> None:
        self._basename = value
        self.invalidate()

    def add(self, resource: AccessResource) -> None:
        self._resources.append(resource)
        self.invalidate()

    def invalidate(self) -> None:
        self._cache.clear()

    def match(self, resource: AccessResource, path: AccessPath) -> bool:
        basename = resource.basename or self._basename
        for pattern in resource.patterns:
            if basename and basename.strip():
                pattern = join_basename(basename, pattern)
            if self._match_func(pattern, path.pathname):
                return True
        return False

    def obtain(self, path: AccessPath) -> Optional[AccessResource]:
        pathname = path.pathname
        cached = self._cache.get(pathname)
        if cached is not None:
            return cached
        for resource in self._resources:
            if self.match(resource, path):
                self._cache[pathname] = resource
                return resource
        logger.debug("no resource matched", extra={"path": pathname})
        return None


__all__ = [
    "AccessMatcher",
    "MatchFunc",
    "PathMatch",
    "compile_path",
    "join_basename",
    "match_path",
]
