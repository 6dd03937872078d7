"""Veto hooks consulted before a user navigation is evaluated."""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, runtime_checkable

from routeguard.access.common import AccessPath
from routeguard.access.resource import AccessResource

if TYPE_CHECKING:
    from routeguard.access.context import AccessContext

BlockHandler = Callable[["AccessContext", AccessPath, Optional[AccessResource]], bool]


@runtime_checkable
class AccessBlocker(Protocol):
    def block(
        self, context: "AccessContext", path: AccessPath, resource: Optional[AccessResource]
    ) -> bool: ...

    def register(self, handler: BlockHandler) -> None: ...

    def unregister(self, handler: BlockHandler) -> None: ...


class SingleBlocker:
    """Holds at most one handler; registering replaces it."""

    def __init__(self) -> None:
        self._handler: Optional[BlockHandler] = None

    def block(
        self, context: "AccessContext", path: AccessPath, resource: Optional[AccessResource]
    ) -> bool:
        if self._handler is None:
            return False
        return bool(self._handler(context, path, resource))

    def register(self, handler: BlockHandler) -> None:
        self._handler = handler

    def unregister(self, handler: BlockHandler) -> None:
        if self._handler is handler:
            self._handler = None


class MultiBlocker:
    """Any number of handlers; the first one returning ``True`` vetoes."""

    def __init__(self) -> None:
        self._handlers: List[BlockHandler] = []

    def block(
        self, context: "AccessContext", path: AccessPath, resource: Optional[AccessResource]
    ) -> bool:
        return any(handler(context, path, resource) for handler in list(self._handlers))

    def register(self, handler: BlockHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unregister(self, handler: BlockHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def clear(self) -> None:
        self._handlers.clear()


def build_blocker(multi: bool = False) -> AccessBlocker:
    return MultiBlocker() if multi else SingleBlocker()


__all__ = ["AccessBlocker", "BlockHandler", "MultiBlocker", "SingleBlocker", "build_blocker"]
