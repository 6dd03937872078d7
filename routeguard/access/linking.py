"""Link an embedded session to the session hosting it."""
from __future__ import annotations

from typing import Optional

from routeguard.access.addon import AccessAddon
from routeguard.access.common import AccessPath
from routeguard.access.context import AccessContext
from routeguard.access.manager import AccessManager
from routeguard.access.resource import AccessResource
from routeguard.access.voter import HierarchyVoter
from routeguard.utils.errors import ConfigurationError
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)

HIERARCHY_JOIN_IGNORE = "ignore"
HIERARCHY_JOIN_MERGE = "merge"
HIERARCHY_JOIN_PARENT = "parent"
HIERARCHY_JOINS = (HIERARCHY_JOIN_IGNORE, HIERARCHY_JOIN_MERGE, HIERARCHY_JOIN_PARENT)


class ParentLinkAddon(AccessAddon):
    """Attach a child session to its parent before its first evaluation.

    The child context and manager get the parent as ``parent`` (unless already
    linked), the child's matcher is mounted under ``basename`` when one is
    given, and with hierarchical voters on both sides the child's permission
    hierarchy is either kept (``ignore``), prefixed with the parent's
    (``merge``) or replaced by it (``parent``).
    """

    def __init__(
        self,
        parent_context: AccessContext,
        parent_manager: Optional[AccessManager] = None,
        *,
        basename: Optional[str] = None,
        hierarchy_join: str = HIERARCHY_JOIN_IGNORE,
    ) -> None:
        if hierarchy_join not in HIERARCHY_JOINS:
            raise ConfigurationError(
                f"hierarchy_join must be one of {', '.join(HIERARCHY_JOINS)}, got {hierarchy_join!r}"
            )
        self.parent_context = parent_context
        self.parent_manager = parent_manager
        self.basename = basename
        self.hierarchy_join = hierarchy_join
        self.linked = False

    def guard_before(
        self,
        context: AccessContext,
        manager: AccessManager,
        current_path: AccessPath,
        current_resource: Optional[AccessResource],
    ) -> None:
        if self.linked:
            return
        if self.basename and self.basename.strip():
            context.matcher.basename = self.basename
        if context.parent is None:
            context.parent = self.parent_context
        if self.parent_manager is not None and manager.parent is None:
            manager.parent = self.parent_manager
        self._join_hierarchy(context)
        self.linked = True
        logger.info("session linked to parent", extra={"path": current_path.pathname})

    def _join_hierarchy(self, context: AccessContext) -> None:
        if self.hierarchy_join == HIERARCHY_JOIN_IGNORE:
            return
        parent_voter = self.parent_context.voter
        child_voter = context.voter
        if not (isinstance(parent_voter, HierarchyVoter) and isinstance(child_voter, HierarchyVoter)):
            return
        parent_relation = parent_voter.relation
        if self.hierarchy_join == HIERARCHY_JOIN_MERGE:
            child_voter.reset_resolver(lambda relation: f"{parent_relation};{relation}")
        else:
            child_voter.reset_resolver(lambda relation: parent_relation)


__all__ = [
    "HIERARCHY_JOINS",
    "HIERARCHY_JOIN_IGNORE",
    "HIERARCHY_JOIN_MERGE",
    "HIERARCHY_JOIN_PARENT",
    "ParentLinkAddon",
]
