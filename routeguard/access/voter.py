"""Permission voting: does a held permission set satisfy a requirement?

Two strategies share one cache. :class:`SimpleVoter` compares tokens
literally; :class:`HierarchyVoter` lets a permission stand in for any of its
descendants, using a relation string such as ``"admin>editor;editor>viewer"``
where each ``parent>child`` pair gives ``child`` the parent ``parent``.

Either way an empty requirement or an empty holding votes ``False``: a
resource that should be open must say so with the anonymous permission.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AbstractSet, Callable, Dict, Optional, Protocol, Set, Tuple, runtime_checkable

from routeguard.access.common import Permission
from routeguard.utils.logging import get_logger

logger = get_logger(__name__)

RelationResolver = Callable[[str], str]

RELATION_SEPARATOR = ";"
PAIR_SEPARATOR = ">"


def origin_relation_resolver(relation: str) -> str:
    return relation


@runtime_checkable
class Voter(Protocol):
    def vote(self, term: AbstractSet[Permission], have: AbstractSet[Permission]) -> bool: ...


class CacheVoter(ABC):
    """Memoises votes keyed on the sorted membership of both sets."""

    def __init__(self, all: bool = False) -> None:
        self._all = all
        self._cache: Dict[Tuple[Tuple[str, ...], Tuple[str, ...]], bool] = {}

    @property
    def all(self) -> bool:
        """``True`` requires every permission (all-of), ``False`` any one (any-of)."""

        return self._all

    @all.setter
    def all(self, value: bool) -> None:
        if value != self._all:
            self._all = value
            self.invalidate()

    def invalidate(self) -> None:
        self._cache.clear()

    def vote(self, term: AbstractSet[Permission], have: AbstractSet[Permission]) -> bool:
        if not term or not have:
            return False
        key = (tuple(sorted(term)), tuple(sorted(have)))
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = self._exec_vote(term, have)
        self._cache[key] = result
        return result

    @abstractmethod
    def _exec_vote(self, term: AbstractSet[Permission], have: AbstractSet[Permission]) -> bool:
        raise NotImplementedError


class SimpleVoter(CacheVoter):
    def _exec_vote(self, term: AbstractSet[Permission], have: AbstractSet[Permission]) -> bool:
        if self._all:
            return all(item in have for item in term)
        return any(item in have for item in term)


class HierarchyPermission:
    """A permission node with at most one parent."""

    def __init__(self, permission: Permission) -> None:
        self.permission = permission
        self.parent: Optional[HierarchyPermission] = None

    def includes(self, permission: Permission) -> bool:
        """True when ``permission`` is this node or one of its ancestors."""

        seen: Set[Permission] = set()
        node: Optional[HierarchyPermission] = self
        while node is not None and node.permission not in seen:
            if node.permission == permission:
                return True
            seen.add(node.permission)
            node = node.parent
        return False

    def __repr__(self) -> str:
        parent = self.parent.permission if self.parent else None
        return f"HierarchyPermission({self.permission!r}, parent={parent!r})"


def parse_hierarchy(relation: str) -> Dict[Permission, HierarchyPermission]:
    """Build the permission forest described by ``relation``.

    Malformed pairs are skipped. A child named twice keeps its last parent.
    """

    mapping: Dict[Permission, HierarchyPermission] = {}
    for item in relation.split(RELATION_SEPARATOR):
        pair = item.split(PAIR_SEPARATOR)
        if len(pair) != 2:
            if item.strip():
                logger.warning("ignoring malformed hierarchy pair %r", item)
            continue
        parent_name, child_name = pair[0].strip(), pair[1].strip()
        if not parent_name or not child_name:
            continue
        parent = mapping.setdefault(parent_name, HierarchyPermission(parent_name))
        child = mapping.setdefault(child_name, HierarchyPermission(child_name))
        child.parent = parent
    return mapping


class HierarchyVoter(CacheVoter):
    """Voter where a permission also satisfies its descendants."""

    def __init__(
        self,
        relation: str,
        all: bool = False,
        resolver: RelationResolver = origin_relation_resolver,
    ) -> None:
        super().__init__(all)
        self._relation = relation
        self._resolver = resolver
        self._mapping: Dict[Permission, HierarchyPermission] = {}
        self._init_hierarchy()

    @property
    def relation(self) -> str:
        return self._relation

    def effective_relation(self) -> str:
        return self._resolver(self._relation)

    def reset_relation(self, relation: str) -> None:
        self._relation = relation
        self._init_hierarchy()

    def reset_resolver(self, resolver: RelationResolver) -> None:
        self._resolver = resolver
        self._init_hierarchy()

    def _init_hierarchy(self) -> None:
        self._mapping = parse_hierarchy(self.effective_relation())
        self.invalidate()
        logger.debug("permission hierarchy rebuilt with %d nodes", len(self._mapping))

    def include_permission(self, held: Permission, required: Permission) -> bool:
        """True when ``held`` equals ``required`` or is one of its ancestors."""

        node = self._mapping.get(required)
        if node is None:
            return held == required
        return node.includes(held)

    def _exec_vote(self, term: AbstractSet[Permission], have: AbstractSet[Permission]) -> bool:
        def satisfied(required: Permission) -> bool:
            return any(self.include_permission(held, required) for held in have)

        if self._all:
            return all(satisfied(required) for required in term)
        return any(satisfied(required) for required in term)


def build_voter(hierarchy: Optional[str] = None, all: bool = False) -> CacheVoter:
    """Return a hierarchical voter when a relation is given, else a flat one."""

    if hierarchy and hierarchy.strip():
        return HierarchyVoter(hierarchy, all=all)
    return SimpleVoter(all=all)


__all__ = [
    "CacheVoter",
    "HierarchyPermission",
    "HierarchyVoter",
    "RelationResolver",
    "SimpleVoter",
    "Voter",
    "build_voter",
    "origin_relation_resolver",
    "parse_hierarchy",
]
