"""Navigators perform the redirects chosen by the behaviour handler."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from routeguard.access.common import AccessPath, PathLike

NavigateOptions = Dict[str, Any]
NavigateFunction = Callable[[AccessPath, Optional[NavigateOptions]], None]


@runtime_checkable
class AccessNavigator(Protocol):
    def navigate(self, to: PathLike, options: Optional[NavigateOptions] = None) -> None: ...


class SimpleNavigator:
    """Adapts a plain ``navigate(path, options)`` function."""

    def __init__(self, navigate: NavigateFunction) -> None:
        self._navigate = navigate

    def navigate(self, to: PathLike, options: Optional[NavigateOptions] = None) -> None:
        self._navigate(AccessPath.coerce(to), options)


class RecordingNavigator:
    """Keeps every requested navigation; handy for hosts that poll."""

    def __init__(self) -> None:
        self.history: List[Tuple[AccessPath, Optional[NavigateOptions]]] = []

    def navigate(self, to: PathLike, options: Optional[NavigateOptions] = None) -> None:
        self.history.append((AccessPath.coerce(to), options))

    @property
    def last(self) -> Optional[AccessPath]:
        return self.history[-1][0] if self.history else None

    def pathnames(self) -> List[str]:
        return [path.pathname for path, _ in self.history]


__all__ = [
    "AccessNavigator",
    "NavigateFunction",
    "NavigateOptions",
    "RecordingNavigator",
    "SimpleNavigator",
]
