"""Tests for state nodes and the structural diff."""

import pytest

from atomx import PathError, StateError
from atomx._state import (
    PrimitiveStateNode,
    StateNode,
    compute_changed_paths,
    create_state_node,
)


class TestStateNode:
    def test_factory_picks_variant(self):
        assert isinstance(create_state_node({"a": 1}), StateNode)
        assert isinstance(create_state_node([1]), StateNode)
        assert isinstance(create_state_node(5), PrimitiveStateNode)

    def test_unchanged_update_is_noop(self):
        node = StateNode({"a": [1, 2]})
        same, changed = node.update(lambda _: {"a": [1, 2]})
        assert same is node
        assert changed == set()

    def test_update_reports_changed_paths(self):
        node = StateNode({"a": 1, "b": 2})
        successor, changed = node.update(lambda v: {**v, "b": 3})
        assert successor.get() == {"a": 1, "b": 3}
        assert changed == {("b",)}
        assert node.get() == {"a": 1, "b": 2}

    def test_get_path_errors_are_descriptive(self):
        node = StateNode({"user": {"name": "Ada"}, "none": None})
        with pytest.raises(PathError, match="does not exist"):
            node.get_path(("user", "age"))
        with pytest.raises(PathError, match="parent is None"):
            node.get_path(("none", "x"))

    def test_set_path_shares_siblings(self):
        node = StateNode({"a": {"b": 1}, "c": {"d": 2}})
        successor, changed = node.set_path(("a", "b"), 5)
        assert changed == {("a", "b")}
        assert successor.get()["c"] is node.get()["c"]

    def test_set_path_same_value_is_noop(self):
        node = StateNode({"a": {"b": 1}})
        same, changed = node.set_path(("a",), {"b": 1})
        assert same is node
        assert changed == set()

    def test_set_root_requires_container(self):
        with pytest.raises(PathError):
            StateNode({"a": 1}).set_path((), 3)


class TestPrimitiveStateNode:
    def test_update_by_identity(self):
        node = PrimitiveStateNode(1)
        assert node.update(lambda _: 1) == (node, set())
        successor, changed = node.update(lambda _: 2)
        assert successor.get() == 2
        assert changed == {()}

    def test_path_operations_are_illegal(self):
        node = PrimitiveStateNode("x")
        with pytest.raises(StateError):
            node.get_path(("a",))
        with pytest.raises(StateError):
            node.set_path(("a",), 1)


class TestChangedPaths:
    def test_wholesale_children_promote_parent(self):
        assert compute_changed_paths({"a": {"b": 1, "c": 2}}, {"a": {"b": 9, "c": 9}}) == {("a",)}

    def test_partial_change_reports_leaf(self):
        assert compute_changed_paths({"a": {"b": 1, "c": 2}}, {"a": {"b": 9, "c": 2}}) == {("a", "b")}

    def test_added_and_removed_keys(self):
        changed = compute_changed_paths({"a": 1, "b": 2, "keep": 0}, {"b": 2, "c": 3, "keep": 0})
        assert changed == {("a",), ("c",)}

    def test_length_change_reports_sequence(self):
        assert compute_changed_paths({"items": [1, 2], "n": 0}, {"items": [1, 2, 3], "n": 0}) == {("items",)}

    def test_type_change(self):
        assert compute_changed_paths({"a": [1], "b": 0}, {"a": {"0": 1}, "b": 0}) == {("a",)}

    def test_none_on_one_side(self):
        assert compute_changed_paths({"a": None, "b": 0}, {"a": {"x": 1}, "b": 0}) == {("a",)}
