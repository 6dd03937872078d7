"""Per-session mutable decision state."""
from __future__ import annotations

from typing import Optional

from routeguard.access.aaa import Authentication, Authorization
from routeguard.access.common import AccessPath
from routeguard.access.resource import AccessResource


def _matches(path: Optional[AccessPath], pathnames: tuple) -> bool:
    return path is not None and path.pathname in pathnames


class AccessRecorder:
    """What the guard has seen during one session.

    ``current_path`` is the last evaluated path, ``allow_path`` the last path
    that was granted and ``origin_path`` the path that revealed the first
    unmet requirement (the place to return to once remediation succeeds). The
    cached identity spares the storer a reload on every navigation.

    A recorder belongs to exactly one session and must not be shared.
    """

    def __init__(self) -> None:
        self.current_path: Optional[AccessPath] = None
        self.allow_path: Optional[AccessPath] = None
        self.origin_path: Optional[AccessPath] = None
        self.resource: Optional[AccessResource] = None
        self.authentication: Optional[Authentication] = None
        self.authorization: Optional[Authorization] = None

    def is_current_path(self, *pathnames: str) -> bool:
        return _matches(self.current_path, pathnames)

    def is_allow_path(self, *pathnames: str) -> bool:
        return _matches(self.allow_path, pathnames)

    def is_origin_path(self, *pathnames: str) -> bool:
        return _matches(self.origin_path, pathnames)

    def clear_origin_path(self) -> None:
        self.origin_path = None

    def clear_resource(self) -> None:
        self.resource = None

    def clear_authentication(self) -> None:
        self.authentication = None

    def clear_authorization(self) -> None:
        self.authorization = None

    def __repr__(self) -> str:
        return (
            f"AccessRecorder(current={self.current_path}, allow={self.allow_path}, "
            f"origin={self.origin_path})"
        )


__all__ = ["AccessRecorder"]
