import pytest

from routeguard.access.voter import (
    HierarchyVoter,
    SimpleVoter,
    build_voter,
    parse_hierarchy,
)


@pytest.fixture
def hierarchy() -> HierarchyVoter:
    # admin is the parent of user, user the parent of guest
    return HierarchyVoter("admin>user;user>guest")


def test_any_of_and_all_of() -> None:
    voter = SimpleVoter()
    assert voter.vote({"a", "b"}, {"b"})
    assert not voter.vote({"a"}, {"b"})

    voter.all = True
    assert not voter.vote({"a", "b"}, {"b"})
    assert voter.vote({"a", "b"}, {"a", "b", "c"})


def test_empty_sets_vote_false() -> None:
    voter = SimpleVoter()
    assert not voter.vote(set(), {"a"})
    assert not voter.vote({"a"}, set())
    assert not HierarchyVoter("admin>user").vote(set(), {"admin"})


def test_mode_change_invalidates_cache() -> None:
    voter = SimpleVoter()
    assert voter.vote({"a", "b"}, {"a"})
    voter.all = True
    assert not voter.vote({"a", "b"}, {"a"})


def test_ancestor_satisfies_descendant(hierarchy: HierarchyVoter) -> None:
    assert hierarchy.vote({"user"}, {"admin"})
    assert hierarchy.vote({"guest"}, {"admin"})
    assert not hierarchy.vote({"admin"}, {"user"})
    assert hierarchy.include_permission("user", "user")
    assert not hierarchy.include_permission("guest", "user")


def test_hierarchy_all_of_needs_every_requirement(hierarchy: HierarchyVoter) -> None:
    hierarchy.all = True
    assert hierarchy.vote({"user", "guest"}, {"admin"})
    assert not hierarchy.vote({"user", "billing"}, {"admin"})
    assert hierarchy.vote({"user", "billing"}, {"admin", "billing"})


def test_reset_relation_rebuilds_hierarchy(hierarchy: HierarchyVoter) -> None:
    assert hierarchy.vote({"user"}, {"admin"})
    hierarchy.reset_relation("root>user")
    assert not hierarchy.vote({"user"}, {"admin"})
    assert hierarchy.vote({"user"}, {"root"})


def test_resolver_maps_relation() -> None:
    voter = HierarchyVoter("editor>viewer")
    voter.reset_resolver(lambda relation: f"owner>editor;{relation}")
    assert voter.relation == "editor>viewer"
    assert voter.effective_relation() == "owner>editor;editor>viewer"
    assert voter.vote({"viewer"}, {"owner"})


def test_cyclic_relation_terminates() -> None:
    voter = HierarchyVoter("a>b;b>a")
    assert voter.vote({"a"}, {"b"})
    assert not voter.vote({"a"}, {"c"})


def test_parse_hierarchy_skips_malformed_pairs() -> None:
    mapping = parse_hierarchy(" admin > user ;broken; a>b>c ;")
    assert set(mapping) == {"admin", "user"}
    assert mapping["user"].parent is mapping["admin"]


def test_build_voter_picks_strategy() -> None:
    assert isinstance(build_voter(), SimpleVoter)
    assert isinstance(build_voter("  "), SimpleVoter)
    voter = build_voter("admin>user", all=True)
    assert isinstance(voter, HierarchyVoter)
    assert voter.all
