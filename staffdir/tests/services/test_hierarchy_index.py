"""Tests for the in-memory reporting tree index."""

from types import SimpleNamespace

import pytest

from staffdir.services.hierarchy_index import HierarchyIndex
from staffdir.utils.errors import DataIntegrityError


def node(id, manager_id=None, department="technology", last_name=None):
    return SimpleNamespace(
        id=id,
        manager_id=manager_id,
        department=department,
        last_name=last_name or id,
        position="Engineer",
    )


@pytest.fixture
def tree():
    """
    a
    ├── b
    │   ├── d
    │   └── e
    └── c
    plus x, detached
    """
    return HierarchyIndex(
        [
            node("a", department="management"),
            node("b", "a"),
            node("c", "a", department="sales"),
            node("d", "b", last_name="zeta"),
            node("e", "b", last_name="alpha"),
            node("x", department="unassigned"),
        ]
    )


class TestLookup:
    """Tests for parent, children and sibling lookups."""

    def test_membership(self, tree):
        """Test containment and size."""
        assert "a" in tree
        assert "missing" not in tree
        assert len(tree) == 6
        assert tree.get(None) is None

    def test_parent_and_children(self, tree):
        """Test edges are indexed in both directions."""
        assert tree.parent("d") == "b"
        assert tree.parent("a") is None
        assert set(tree.children("b")) == {"d", "e"}
        assert tree.has_children("b")
        assert not tree.has_children("d")

    def test_siblings(self, tree):
        """Test siblings exclude the employee and are empty for the root."""
        assert tree.siblings("d") == ["e"]
        assert set(tree.siblings("b")) == {"c"}
        assert tree.siblings("a") == []

    def test_roots_exclude_detached(self, tree):
        """Test detached employees are not organization roots."""
        assert [e.id for e in tree.roots()] == ["a"]
        assert tree.root().id == "a"
        assert [e.id for e in tree.detached()] == ["x"]

    def test_dangling_manager_reference(self):
        """Test a reference to a missing manager is treated as no parent."""
        index = HierarchyIndex([node("a"), node("b", "ghost")])
        assert index.parent("b") is None
        assert index.ancestors("b") == []

    def test_in_department(self, tree):
        """Test department filter."""
        assert {e.id for e in tree.in_department("technology")} == {"b", "d", "e"}


class TestTraversal:
    """Tests for subtree and chain walks."""

    def test_descendants(self, tree):
        """Test all employees below a node are returned."""
        assert set(tree.descendants("a")) == {"b", "c", "d", "e"}
        assert tree.descendants("d") == []
        assert tree.subtree("b") == {"b", "d", "e"}

    def test_ancestors_ordered_upwards(self, tree):
        """Test the chain starts at the immediate manager."""
        assert tree.ancestors("d") == ["b", "a"]
        assert tree.ancestors("a") == []

    def test_is_descendant(self, tree):
        """Test ancestry checks in both directions."""
        assert tree.is_descendant("a", "e")
        assert tree.is_descendant("b", "d")
        assert not tree.is_descendant("d", "b")
        assert not tree.is_descendant("c", "d")

    def test_acyclic_tree_passes(self, tree):
        """Test a well-formed tree passes the cycle check."""
        tree.assert_acyclic()


class TestCorruptData:
    """Tests that manager cycles surface as integrity faults."""

    @pytest.fixture
    def cyclic(self):
        return HierarchyIndex([node("root"), node("p", "q"), node("q", "r"), node("r", "p")])

    def test_descendants_detects_cycle(self, cyclic):
        """Test walking down a cycle raises."""
        with pytest.raises(DataIntegrityError):
            cyclic.descendants("p")

    def test_ancestors_detects_cycle(self, cyclic):
        """Test walking up a cycle raises."""
        with pytest.raises(DataIntegrityError):
            cyclic.ancestors("p")

    def test_assert_acyclic_detects_cycle(self, cyclic):
        """Test the full scan raises."""
        with pytest.raises(DataIntegrityError) as exc_info:
            cyclic.assert_acyclic()
        assert exc_info.value.status_code == 500

    def test_self_reference(self):
        """Test an employee managing itself is a cycle."""
        index = HierarchyIndex([node("s", "s")])
        with pytest.raises(DataIntegrityError):
            index.ancestors("s")


class TestBuildTree:
    """Tests for nested tree construction."""

    def test_nested_shape(self, tree):
        """Test children are nested under their manager."""
        result = tree.build_tree("a", lambda e: {"id": e.id})

        assert result["id"] == "a"
        assert {child["id"] for child in result["children"]} == {"b", "c"}
        b = next(child for child in result["children"] if child["id"] == "b")
        assert {child["id"] for child in b["children"]} == {"d", "e"}

    def test_sorted_children(self, tree):
        """Test children follow the sort key."""
        result = tree.build_tree("b", lambda e: {"id": e.id}, sort_key=lambda e: e.last_name)
        assert [child["id"] for child in result["children"]] == ["e", "d"]

    def test_leaf(self, tree):
        """Test a leaf renders with an empty children list."""
        assert tree.build_tree("x", lambda e: {"id": e.id}) == {"id": "x", "children": []}
