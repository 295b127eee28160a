"""Cycle detection and dependency chain reporting."""
import pytest
from catlink.models.category import Category, CategoryLink
from catlink.services.circular_dependency import CircularDependencyValidator
from tests.conftest import make_category


@pytest.fixture
def validator():
    return CircularDependencyValidator(max_depth=100, deep_chain_warning=5)


def chain(count, prefix="n"):
    ids = [f"{prefix}{i}" for i in range(count)]
    return [
        make_category(category_id, links=[ids[i + 1]] if i + 1 < count else [])
        for i, category_id in enumerate(ids)
    ]


def test_acyclic_snapshot_is_valid_for_every_node(validator, electronics_snapshot):
    for category in electronics_snapshot:
        result = validator.check_circular_dependency(category.id, electronics_snapshot)
        assert result.is_valid
        assert result.errors == []


def test_cycle_is_reported_with_names(validator):
    categories = [
        make_category("a", "Electronics", links=["b"]),
        make_category("b", "Accessories", links=["c"]),
        make_category("c", "Cables", links=["a"]),
    ]
    result = validator.check_circular_dependency("a", categories)

    assert not result.is_valid
    assert result.errors == ["Circular dependency detected: Electronics → Accessories → Cables → Electronics"]


def test_cycle_not_through_start_reports_only_the_loop(validator):
    categories = [
        make_category("root", "Root", links=["x"]),
        make_category("x", "X", links=["y"]),
        make_category("y", "Y", links=["x"]),
    ]
    result = validator.check_circular_dependency("root", categories)

    assert result.errors == ["Circular dependency detected: X → Y → X"]


def test_missing_name_falls_back_to_id(validator):
    categories = [
        Category(id="a", name="", linked_categories=[CategoryLink(category_id="b")]),
        make_category("b", "Beta", links=["a"]),
    ]
    result = validator.check_circular_dependency("a", categories)

    assert result.errors == ["Circular dependency detected: a → Beta → a"]


def test_inactive_links_do_not_close_a_cycle(validator):
    categories = [
        make_category("a", links=["b"]),
        make_category("b", inactive=["a"]),
    ]
    assert validator.check_circular_dependency("a", categories).is_valid


def test_shared_subgraph_is_visited_once(validator):
    categories = [
        make_category("a", links=["b", "c"]),
        make_category("b", links=["d"]),
        make_category("c", links=["d"]),
        make_category("d"),
    ]
    visited = set()
    result = validator.check_circular_dependency("a", categories, visited)

    assert result.is_valid
    assert visited == {"a", "b", "c", "d"}
    # already checked nodes short-circuit
    assert validator.check_circular_dependency("d", [], visited).is_valid


def test_unknown_category_is_not_an_error(validator):
    assert validator.check_circular_dependency("ghost", []).is_valid


def test_deep_chain_produces_warning(validator):
    categories = chain(7)
    result = validator.check_circular_dependency("n0", categories)

    assert result.is_valid
    assert len(result.warnings) == 2
    assert result.warnings[0] == (
        "Deep dependency chain detected (7 levels): n0 → n1 → n2 → n3 → n4 → n5 → n6"
    )


def test_chain_beyond_max_depth_fails(validator):
    result = validator.check_circular_dependency("n0", chain(103))

    assert not result.is_valid
    assert result.errors == [
        "Dependency chain exceeded maximum depth of 100 - possible circular dependency"
    ]


def test_long_chain_does_not_hit_recursion_limit():
    validator = CircularDependencyValidator(max_depth=5000, deep_chain_warning=5000)
    result = validator.check_circular_dependency("n0", chain(3000))

    assert result.is_valid
    assert result.warnings == []


def test_check_is_idempotent(validator):
    categories = [
        make_category("a", "A", links=["b"]),
        make_category("b", "B", links=["a"]),
    ] + chain(8)
    first = validator.check_circular_dependency("a", categories)
    second = validator.check_circular_dependency("a", categories)
    assert first == second

    first = validator.check_circular_dependency("n0", categories)
    second = validator.check_circular_dependency("n0", categories)
    assert first == second


def test_dependency_chains_lists_terminal_paths(validator, electronics_snapshot):
    chains = validator.get_dependency_chains("electronics", electronics_snapshot)
    assert chains == ["Electronics → Batteries", "Electronics → Chargers"]


def test_dependency_chains_empty_without_links(validator, electronics_snapshot):
    assert validator.get_dependency_chains("batteries", electronics_snapshot) == []
    assert validator.get_dependency_chains("ghost", electronics_snapshot) == []


def test_dependency_chains_truncate_past_max_depth(validator):
    chains = validator.get_dependency_chains("n0", chain(15), max_depth=10)

    assert len(chains) == 1
    assert chains[0].endswith(" → [...]")
    assert chains[0].startswith("n0 → n1")


def test_dependency_chains_terminate_on_cycles(validator):
    categories = [
        make_category("a", "A", links=["b"]),
        make_category("b", "B", links=["a"]),
    ]
    chains = validator.get_dependency_chains("a", categories, max_depth=3)

    assert chains == ["A → B → A → B → A → [...]"]


def test_validate_all_prefixes_category_names(validator):
    categories = [
        make_category("a", "Alpha", links=["b"]),
        make_category("b", "Beta", links=["a"]),
        make_category("c", "Gamma"),
    ]
    result = validator.validate_all_category_links(categories)

    assert not result.is_valid
    assert result.errors == [
        "[Alpha] Circular dependency detected: Alpha → Beta → Alpha",
        "[Beta] Circular dependency detected: Beta → Alpha → Beta",
    ]


def test_validate_all_warns_on_many_links(validator):
    targets = [make_category(f"t{i}") for i in range(51)]
    hub = make_category("hub", "Hub", links=[t.id for t in targets])
    result = validator.validate_all_category_links([hub] + targets)

    assert result.is_valid
    assert any("High number of category links (51)" in warning for warning in result.warnings)


def test_link_validation_summary(validator, electronics_snapshot):
    electronics, batteries, _ = electronics_snapshot
    assert validator.get_link_validation_summary(electronics, electronics_snapshot) == "2 active links"
    assert validator.get_link_validation_summary(batteries, electronics_snapshot) == (
        "No category links configured"
    )

    disabled = make_category("d", inactive=["batteries"])
    assert validator.get_link_validation_summary(disabled, electronics_snapshot) == (
        "All category links are disabled"
    )

    looped = [make_category("a", "A", links=["b"]), make_category("b", "B", links=["a"])]
    assert validator.get_link_validation_summary(looped[0], looped).startswith(
        "Link configuration has issues: Circular dependency detected"
    )
