"""Declarative access requirements bound to route patterns."""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Tuple, Union

from routeguard.access.common import Permission, PermissionSet
from routeguard.utils.errors import ConfigurationError


@dataclass(frozen=True)
class PathPattern:
    """Router-style pattern with explicit matching options."""

    path: str
    case_sensitive: bool = False
    end: bool = True


ResourcePattern = Union[str, PathPattern]
ResourceLabel = str


class AccessResource:
    """Access policy for one or more path patterns.

    Three reserved permissions reduce the permission set to a flag:
    ``__anonymous__`` (no identity needed), ``__authenticated__`` (any
    authenticated identity) and ``__authorized__`` (any identity holding an
    authorization). A reserved permission clears the explicit ones; when more
    than one is present the first in that order wins. Two reserved labels,
    ``__signatured__`` and ``__always_signature__``, mark resources that need a
    recorded signature; the latter also drops the signature whenever the user
    navigates away.

    Everything is fixed at construction except :attr:`basename`, which a parent
    session may rebind to mount the resource under a prefix.
    """

    PERMISSION_ANONYMOUS = "__anonymous__"
    PERMISSION_AUTHENTICATED = "__authenticated__"
    PERMISSION_AUTHORIZED = "__authorized__"
    LABEL_SIGNATURED = "__signatured__"
    LABEL_ALWAYS_SIGNATURE = "__always_signature__"

    __slots__ = (
        "_patterns",
        "_permissions",
        "_labels",
        "_anonymous",
        "_authenticated",
        "_authorized",
        "_signatured",
        "_always_signature",
        "_basename",
    )

    def __init__(
        self,
        patterns: Iterable[ResourcePattern],
        permissions: Iterable[Permission] = (),
        labels: Iterable[ResourceLabel] = (),
        basename: Optional[str] = None,
    ) -> None:
        for name, values in (("patterns", patterns), ("permissions", permissions), ("labels", labels)):
            if isinstance(values, str):
                raise ConfigurationError(
                    f"Access resource {name} must be a collection, got the string {values!r}"
                )
        # dict.fromkeys keeps declaration order while dropping duplicates
        pattern_list = tuple(dict.fromkeys(patterns))
        if not pattern_list:
            raise ConfigurationError("Access resource patterns must not be empty")
        permission_values = set(permissions)
        label_values = set(labels)

        self._anonymous = self.PERMISSION_ANONYMOUS in permission_values
        self._authenticated = (
            not self._anonymous and self.PERMISSION_AUTHENTICATED in permission_values
        )
        self._authorized = (
            not self._anonymous
            and not self._authenticated
            and self.PERMISSION_AUTHORIZED in permission_values
        )
        if self._anonymous or self._authenticated or self._authorized:
            permission_values.clear()

        self._always_signature = self.LABEL_ALWAYS_SIGNATURE in label_values
        self._signatured = self._always_signature or self.LABEL_SIGNATURED in label_values
        label_values.discard(self.LABEL_SIGNATURED)
        label_values.discard(self.LABEL_ALWAYS_SIGNATURE)

        self._patterns = pattern_list
        self._permissions: PermissionSet = frozenset(permission_values)
        self._labels: FrozenSet[ResourceLabel] = frozenset(label_values)
        self._basename = basename

    @property
    def patterns(self) -> Tuple[ResourcePattern, ...]:
        return self._patterns

    @property
    def permissions(self) -> PermissionSet:
        return self._permissions

    @property
    def labels(self) -> FrozenSet[ResourceLabel]:
        return self._labels

    @property
    def anonymous(self) -> bool:
        return self._anonymous

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def authorized(self) -> bool:
        return self._authorized

    @property
    def signatured(self) -> bool:
        return self._signatured

    @property
    def always_signature(self) -> bool:
        return self._always_signature

    @property
    def basename(self) -> Optional[str]:
        return self._basename

    @basename.setter
    def basename(self, value: Optional[str]) -> None:
        self._basename = value

    def has_pattern(self, pattern: ResourcePattern) -> bool:
        return pattern in self._patterns

    def has_permission(self, permission: Permission) -> bool:
        return permission in self._permissions

    def has_label(self, label: ResourceLabel) -> bool:
        return label in self._labels

    def describe(self) -> str:
        if self._anonymous:
            return "anonymous"
        if self._authenticated:
            return "authenticated"
        if self._authorized:
            return "authorized"
        return ",".join(sorted(self._permissions)) or "-"

    def __repr__(self) -> str:
        patterns = [getattr(p, "path", p) for p in self._patterns]
        return f"AccessResource(patterns={patterns!r}, access={self.describe()!r})"


__all__ = ["AccessResource", "PathPattern", "ResourceLabel", "ResourcePattern"]
