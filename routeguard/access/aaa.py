"""Identity capabilities: authentication, authorization and the combined user.

Authentication and authorization are capabilities, not a class hierarchy: a
type satisfies :class:`Authentication` by exposing ``is_authenticated`` and
:class:`Authorization` by exposing ``get_permissions``. :class:`SimpleUser`
satisfies both, which lets a storer hand the same object back for either
lookup.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from routeguard.access.common import PermissionSet, permission_set


@runtime_checkable
class Authentication(Protocol):
    def is_authenticated(self) -> bool: ...

    def set_authenticated(self, authenticated: bool) -> None: ...


@runtime_checkable
class Authorization(Protocol):
    def get_permissions(self) -> PermissionSet: ...


class AuthenticationDatasheet(BaseModel):
    """Persisted shape of an authentication record."""

    model_config = ConfigDict(extra="allow")

    authenticated: bool


class AuthorizationDatasheet(BaseModel):
    """Persisted shape of an authorization record."""

    model_config = ConfigDict(extra="allow")

    permissions: List[str] = Field(default_factory=list)


class UserDatasheet(BaseModel):
    """Persisted shape of a combined user record."""

    model_config = ConfigDict(extra="allow")

    authenticated: bool
    permissions: List[str] = Field(default_factory=list)
    invalid: bool = False


def sheet_to_dict(sheet: Any) -> Dict[str, Any]:
    """Normalise a datasheet argument into a plain dict.

    Accepts a mapping, a pydantic model or an identity object exposing
    ``datasheet``.
    """

    if isinstance(sheet, BaseModel):
        return sheet.model_dump()
    if isinstance(sheet, Mapping):
        data = dict(sheet)
    else:
        data = dict(sheet.datasheet)
    permissions = data.get("permissions")
    if isinstance(permissions, (set, frozenset, tuple)):
        data["permissions"] = sorted(permissions)
    return data


class SimpleAuthentication:
    def __init__(self, datasheet: Mapping[str, Any]) -> None:
        self._datasheet = dict(datasheet)
        self._authenticated = bool(self._datasheet.get("authenticated", False))

    @property
    def datasheet(self) -> Dict[str, Any]:
        return self._datasheet

    def is_authenticated(self) -> bool:
        return self._authenticated

    def set_authenticated(self, authenticated: bool) -> None:
        self._authenticated = authenticated

    def __repr__(self) -> str:
        return f"SimpleAuthentication(authenticated={self._authenticated})"


class SimpleAuthorization:
    def __init__(self, datasheet: Mapping[str, Any]) -> None:
        self._datasheet = dict(datasheet)
        self._permissions = permission_set(self._datasheet.get("permissions") or ())

    @property
    def datasheet(self) -> Dict[str, Any]:
        return self._datasheet

    def get_permissions(self) -> PermissionSet:
        return self._permissions

    def __repr__(self) -> str:
        return f"SimpleAuthorization(permissions={sorted(self._permissions)})"


class SimpleUser:
    """Authentication and authorization in one identity."""

    def __init__(self, datasheet: Mapping[str, Any]) -> None:
        self._datasheet = dict(datasheet)
        self._permissions = permission_set(self._datasheet.get("permissions") or ())
        self._authenticated = bool(self._datasheet.get("authenticated", False))
        self._invalid = bool(self._datasheet.get("invalid", False))

    @classmethod
    def of(cls, permissions: Iterable[str], *, authenticated: bool = True, **extra: Any) -> "SimpleUser":
        return cls({"authenticated": authenticated, "permissions": sorted(set(permissions)), **extra})

    @property
    def datasheet(self) -> Dict[str, Any]:
        return self._datasheet

    def is_authenticated(self) -> bool:
        return self._authenticated

    def set_authenticated(self, authenticated: bool) -> None:
        self._authenticated = authenticated

    def get_permissions(self) -> PermissionSet:
        return self._permissions

    def is_invalid(self) -> bool:
        return self._invalid

    def set_invalid(self, invalid: bool) -> None:
        self._invalid = invalid

    def __repr__(self) -> str:
        return (
            f"SimpleUser(authenticated={self._authenticated}, "
            f"permissions={sorted(self._permissions)}, invalid={self._invalid})"
        )


def is_user(identity: Any) -> bool:
    """True when ``identity`` carries both capabilities."""

    return isinstance(identity, Authentication) and isinstance(identity, Authorization)


__all__ = [
    "Authentication",
    "Authorization",
    "AuthenticationDatasheet",
    "AuthorizationDatasheet",
    "SimpleAuthentication",
    "SimpleAuthorization",
    "SimpleUser",
    "UserDatasheet",
    "is_user",
    "sheet_to_dict",
]
