"""Shared value types: paths, decisions and behaviours."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, Mapping, Union
from urllib.parse import urlsplit

Permission = str
PermissionSet = FrozenSet[Permission]


def permission_set(permissions: Iterable[Permission] = ()) -> PermissionSet:
    return frozenset(permissions)


@dataclass(frozen=True)
class AccessPath:
    """A navigation target.

    Only ``pathname`` takes part in equality and hashing; ``search`` and
    ``hash`` ride along so a redirect can restore them.
    """

    pathname: str
    search: str = field(default="", compare=False)
    hash: str = field(default="", compare=False)

    @classmethod
    def parse(cls, url: str) -> "AccessPath":
        parts = urlsplit(url)
        pathname = parts.path or "/"
        search = f"?{parts.query}" if parts.query else ""
        fragment = f"#{parts.fragment}" if parts.fragment else ""
        return cls(pathname=pathname, search=search, hash=fragment)

    @classmethod
    def coerce(cls, target: "PathLike") -> "AccessPath":
        if isinstance(target, AccessPath):
            return target
        if isinstance(target, str):
            return cls.parse(target)
        return cls(
            pathname=target.get("pathname") or "/",
            search=target.get("search") or "",
            hash=target.get("hash") or "",
        )

    def __str__(self) -> str:
        return f"{self.pathname}{self.search}{self.hash}"


PathLike = Union[AccessPath, str, Mapping[str, Any]]


class AccessDecision(str, Enum):
    """Outcome of evaluating one path against the current identity."""

    NOT_RESOURCE = "notResource"
    NOT_AUTHENTICATION = "notAuthentication"
    INVALID_AUTHENTICATION = "invalidAuthentication"
    NOT_AUTHORIZATION = "notAuthorization"
    NOT_SIGNATURE = "notSignature"
    ACCESS_DENIED = "accessDenied"
    ALLOW_ACCESS = "allowAccess"


class AccessBehave(str, Enum):
    """Remedial action a decision maps to."""

    DO_NOTHING = "doNothing"
    GO_NAVIGATE = "goNavigate"
    RE_DECISION = "reDecision"


__all__ = [
    "AccessBehave",
    "AccessDecision",
    "AccessPath",
    "PathLike",
    "Permission",
    "PermissionSet",
    "permission_set",
]
