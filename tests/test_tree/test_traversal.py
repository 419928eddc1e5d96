"""
Unit tests for TreeIndex and TraversalEngine.
These work on in-memory nodes only; no database is involved.
"""
import pytest

from gtdtree.config import MAX_TREE_DEPTH
from gtdtree.tree import TreeIndex, TreeNode, TraversalEngine


def node(item_id, parent_id=None, sort_order=0, item_type="Folder"):
    return TreeNode(id=item_id, parent_id=parent_id, sort_order=sort_order, item_type=item_type, title=item_id)


@pytest.fixture
def index():
    """
    R
    ├── A
    │   ├── A1
    │   │   └── A1a
    │   │       └── A1a_i
    │   └── A2
    └── B
    S
    """
    return TreeIndex([
        node("R"),
        node("S", sort_order=1),
        node("B", "R", 1),
        node("A", "R", 0),
        node("A2", "A", 7),
        node("A1", "A", 3),
        node("A1a", "A1", 0),
        node("A1a_i", "A1a", 0),
    ])


@pytest.fixture
def engine(index):
    return TraversalEngine(index)


class TestTreeIndex:
    """Tests for the arena and children multimap."""

    def test_children_sorted_by_sort_order(self, index):
        assert [child.id for child in index.children("A")] == ["A1", "A2"]
        assert [root.id for root in index.roots()] == ["R", "S"]

    def test_max_sort_order(self, index):
        assert index.max_sort_order("A") == 7
        assert index.max_sort_order("B") is None

    def test_reparent_updates_both_parents(self, index):
        index.reparent("A2", "B", 0)

        assert [child.id for child in index.children("A")] == ["A1"]
        assert [child.id for child in index.children("B")] == ["A2"]
        assert index.get("A2").parent_id == "B"

    def test_discard_removes_node(self, index):
        index.discard("B")

        assert "B" not in index
        assert [child.id for child in index.children("R")] == ["A"]


class TestDescendants:
    """Tests for descendants()."""

    def test_unbounded_excludes_root(self, engine):
        assert engine.descendants("R") == {"A", "B", "A1", "A2", "A1a", "A1a_i"}

    def test_depth_limited(self, engine):
        assert engine.descendants("R", 1) == {"A", "B"}
        assert engine.descendants("R", 2) == {"A", "B", "A1", "A2"}

    def test_unbounded_is_superset_of_depth_two(self, engine):
        assert engine.descendants("R") >= engine.descendants("R", 2)
        assert engine.descendants("R") != engine.descendants("R", 2)

    def test_equal_when_subtree_is_shallow(self, engine):
        # A1 has only two levels below it
        assert engine.descendants("A1") == engine.descendants("A1", 2)

    def test_leaf_has_no_descendants(self, engine):
        assert engine.descendants("B") == set()

    def test_unknown_id_has_no_descendants(self, engine):
        assert engine.descendants("missing") == set()

    def test_zero_depth(self, engine):
        assert engine.descendants("R", 0) == set()


class TestWalk:
    """Tests for the ordered pre-order walk."""

    def test_preorder_with_depths(self, engine):
        walked = [(n.id, depth) for n, depth in engine.walk("R")]

        assert walked == [
            ("A", 1), ("A1", 2), ("A1a", 3), ("A1a_i", 4), ("A2", 2), ("B", 1),
        ]

    def test_depth_limit(self, engine):
        walked = [n.id for n, _ in engine.walk("R", 2)]

        assert walked == ["A", "A1", "A2", "B"]


class TestMalformedData:
    """Cycles and very deep chains must not hang or recurse forever."""

    def test_cycle_terminates(self):
        # X -> Y -> Z -> X, unreachable from any root
        index = TreeIndex([node("X", "Z"), node("Y", "X"), node("Z", "Y")])
        engine = TraversalEngine(index)

        assert engine.descendants("X") == {"Y", "Z"}
        assert engine.is_descendant_of("X", "missing") is False

    def test_deep_chain_is_capped(self):
        nodes = [node("N0")]
        for i in range(1, MAX_TREE_DEPTH + 20):
            nodes.append(node(f"N{i}", f"N{i - 1}"))
        engine = TraversalEngine(TreeIndex(nodes))

        assert len(engine.descendants("N0")) == MAX_TREE_DEPTH


class TestIsDescendantOf:
    """Tests for is_descendant_of()."""

    def test_direct_and_indirect(self, engine):
        assert engine.is_descendant_of("A", "R") is True
        assert engine.is_descendant_of("A1a_i", "R") is True
        assert engine.is_descendant_of("A1a_i", "A1") is True

    def test_not_descendant(self, engine):
        assert engine.is_descendant_of("B", "A") is False
        assert engine.is_descendant_of("R", "A") is False
        assert engine.is_descendant_of("S", "R") is False

    def test_ancestor_beyond_walk_depth(self):
        nodes = [node("N0")]
        for i in range(1, MAX_TREE_DEPTH + 20):
            nodes.append(node(f"N{i}", f"N{i - 1}"))
        engine = TraversalEngine(TreeIndex(nodes))

        assert engine.is_descendant_of(f"N{MAX_TREE_DEPTH + 19}", "N0") is True

    def test_item_is_not_its_own_descendant(self, engine):
        assert engine.is_descendant_of("A", "A") is False
        assert engine.is_within("A", "A") is True
