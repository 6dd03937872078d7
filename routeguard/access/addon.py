"""Lifecycle hooks around guard evaluation."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from routeguard.access.common import AccessDecision, AccessPath
from routeguard.access.resource import AccessResource

if TYPE_CHECKING:
    from routeguard.access.context import AccessContext
    from routeguard.access.manager import AccessManager


class AccessAddon:
    """Base class for guard addons; every hook is a no-op by default.

    ``guard_before`` runs before a fresh evaluation, ``guard_after`` once a
    navigation has settled without a follow-up redirect, and the ``permit_*``
    pair brackets committing an allowed navigation away from ``stay_path``.
    """

    def guard_before(
        self,
        context: "AccessContext",
        manager: "AccessManager",
        current_path: AccessPath,
        current_resource: Optional[AccessResource],
    ) -> None:
        """Called before the decision engine runs for ``current_path``."""

    def guard_after(
        self,
        context: "AccessContext",
        manager: "AccessManager",
        current_path: AccessPath,
        current_resource: Optional[AccessResource],
        current_decision: AccessDecision,
    ) -> None:
        """Called when handling of ``current_path`` has finished."""

    def permit_before(
        self,
        context: "AccessContext",
        manager: "AccessManager",
        stay_path: AccessPath,
        block_path: AccessPath,
        stay_resource: Optional[AccessResource],
        block_resource: Optional[AccessResource],
    ) -> None:
        """Called before an allowed navigation is committed."""

    def permit_after(
        self,
        context: "AccessContext",
        manager: "AccessManager",
        stay_path: AccessPath,
        block_path: AccessPath,
        stay_resource: Optional[AccessResource],
        block_resource: Optional[AccessResource],
    ) -> None:
        """Called after an allowed navigation is committed."""


__all__ = ["AccessAddon"]
