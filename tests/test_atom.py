"""Tests for atoms, path accessors and path-aware notification."""

import dataclasses
import logging

import pytest

from atomx import Atom, PathError, StateError, create_atom


@dataclasses.dataclass
class Account:
    name: str
    token: str = dataclasses.field(repr=False)


class TestAtom:
    def test_get_set(self):
        a = create_atom(1)
        assert a.get() == 1
        a.set(2)
        assert a.get() == 2

    def test_unique_ids(self):
        assert create_atom(0).id != create_atom(0).id

    def test_registered_in_runtime(self, runtime):
        a = create_atom(0)
        assert runtime.get_atom(a.id) is a
        a.dispose()
        assert runtime.get_atom(a.id) is None

    def test_notifies_subscribers(self):
        a = create_atom(0)
        log = []
        a.subscribe(lambda: log.append(a.get()))
        a.set(1)
        a.set(2)
        assert log == [1, 2]

    def test_unchanged_set_does_not_notify(self):
        a = create_atom({"a": 1})
        log = []
        a.subscribe(lambda: log.append("x"))
        a.set({"a": 1})
        a.set({"a": 1})
        assert log == []

    def test_custom_equals_suppresses(self):
        a = create_atom("Ada", equals=lambda old, new: old.lower() == new.lower())
        log = []
        a.subscribe(lambda: log.append(a.get()))
        a.set("ADA")
        assert log == []
        assert a.get() == "Ada"

    def test_update(self):
        a = create_atom({"n": 1})
        a.update(lambda s: {"n": s["n"] + 1})
        assert a.get() == {"n": 2}

    def test_update_error_reported_not_raised(self, reported):
        a = create_atom(1)

        def bad(_):
            raise ValueError("nope")

        a.update(bad)
        assert a.get() == 1
        assert len(reported) == 1
        assert isinstance(reported[0], StateError)
        assert isinstance(reported[0].cause, ValueError)

    def test_values_are_frozen(self):
        a = create_atom({"items": [1]})
        with pytest.raises(TypeError):
            a.get()["items"].append(2)

    def test_input_not_aliased(self):
        source = {"items": [1]}
        a = create_atom(source)
        source["items"].append(2)
        assert a.get() == {"items": [1]}

    def test_unsubscribe_is_idempotent(self):
        a = create_atom(0)
        log = []
        unsubscribe = a.subscribe(lambda: log.append("x"))
        unsubscribe()
        unsubscribe()
        a.set(1)
        assert log == []

    def test_subscriber_error_does_not_stop_others(self, reported):
        a = create_atom(0)
        log = []

        def bad():
            raise RuntimeError("bad")

        a.subscribe(bad)
        a.subscribe(lambda: log.append("ok"))
        a.set(1)
        assert log == ["ok"]
        assert len(reported) == 1

    def test_non_callable_subscriber_rejected(self):
        with pytest.raises(StateError):
            create_atom(0).subscribe("nope")

    def test_value_differing_only_outside_repr_is_written(self):
        a = create_atom({"acct": Account("ada", "old")})
        log = []
        a.at("acct").subscribe(lambda: log.append(a.get()["acct"].token))
        a.set({"acct": Account("ada", "new")})
        assert a.get()["acct"].token == "new"
        assert log == ["new"]

    def test_distinct_opaque_objects_are_written(self):
        first, second = object(), object()
        a = create_atom({"handle": first})
        a.set({"handle": second})
        assert a.get()["handle"] is second

    def test_peek(self):
        a = create_atom(3)
        assert a.peek() == 3

    def test_repr(self):
        assert repr(create_atom(1, name="count")) == "Atom(count, 1)"


class TestPaths:
    def test_structural_sharing(self):
        a = create_atom({"a": {"b": 1}, "c": {"d": 2}})
        before = a.get()["c"]
        a.at("a").at("b").set(5)
        assert a.get()["a"]["b"] == 5
        assert a.get()["c"] is before

    def test_accessor_chain(self):
        a = create_atom({"users": [{"name": "Ada"}]})
        name = a.at("users").at(0).at("name")
        assert name.path == ("users", 0, "name")
        assert name.get() == "Ada"
        name.update(str.upper)
        assert a.get()["users"][0]["name"] == "ADA"

    def test_get_path_string_and_tuple(self):
        a = create_atom({"a": {"b": 1}})
        assert a.get_path("a.b") == 1
        assert a.get_path(("a", "b")) == 1

    def test_get_missing_path_raises(self, reported):
        a = create_atom({"a": {}})
        with pytest.raises(PathError):
            a.get_path("a.b")
        assert len(reported) == 1

    def test_set_path_creates_intermediates(self):
        a = create_atom({})
        a.set_path("profile.name", "Ada")
        assert a.get() == {"profile": {"name": "Ada"}}

    def test_path_ops_on_primitive_raise(self):
        a = create_atom(1)
        with pytest.raises(StateError):
            a.at("x")
        with pytest.raises(StateError):
            a.get_path("x")
        with pytest.raises(StateError):
            a.set_path("x", 1)
        with pytest.raises(StateError):
            a.subscribe_path("x", lambda: None)


class TestPathNotification:
    def test_ancestor_subscriber_fires(self):
        a = create_atom({"user": {"name": "J", "age": 1}})
        log = []
        a.subscribe_path("user", lambda: log.append("user"))
        a.at("user").at("name").set("K")
        assert log == ["user"]

    def test_descendant_subscriber_fires_on_wholesale_replace(self):
        a = create_atom({"user": {"profile": {"name": "J"}}, "other": 0})
        log = []
        a.subscribe_path("user.profile.name", lambda: log.append("name"))
        a.set({"user": None, "other": 0})
        assert log == ["name"]

    def test_digit_key_subscriber_fires_on_ancestor_replace(self):
        a = create_atom({"users": {"42": {"name": "A", "age": 1}}})
        log = []
        name = a.at("users").at("42").at("name")
        name.subscribe(lambda: log.append(a.get()["users"]["42"]["name"]))
        a.at("users").at("42").set({"name": "B", "age": 1})
        assert log == ["B"]

    def test_unrelated_subscriber_does_not_fire(self):
        a = create_atom({"x": 1, "y": 1})
        log = []
        a.at("y").subscribe(lambda: log.append("y"))
        a.at("x").set(2)
        assert log == []

    def test_noop_nested_write(self):
        a = create_atom({"u": {"name": "J"}})
        calls = []
        a.at("u").at("name").subscribe(lambda: calls.append(1))
        a.at("u").set({"name": "J"})
        assert calls == []

    def test_handler_runs_once_per_write(self):
        a = create_atom({"a": {"b": 1, "c": 1}, "z": 0})
        log = []

        def handler():
            log.append("x")

        a.subscribe(handler)
        a.subscribe_path("a", handler)
        a.subscribe_path("a.b", handler)
        a.set({"a": {"b": 2, "c": 1}, "z": 0})
        assert log == ["x"]

    def test_path_unsubscribe(self):
        a = create_atom({"x": 1})
        log = []
        unsubscribe = a.at("x").subscribe(lambda: log.append("x"))
        unsubscribe()
        a.at("x").set(2)
        assert log == []


class TestAtomClass:
    def test_direct_construction(self):
        a = Atom([1, 2], name="list")
        assert not a.is_primitive
        assert a.get() == [1, 2]


class TestDevtools:
    def test_logs_lifecycle(self, caplog):
        with caplog.at_level(logging.INFO, logger="atomx.devtools"):
            a = create_atom(1, name="count", devtools=True)
            unsubscribe = a.subscribe(lambda: None)
            a.set(2)
            unsubscribe()
        messages = [record.getMessage() for record in caplog.records]
        assert messages[0] == "count created: 1"
        assert "count subscription added" in messages
        assert "count updated: 2 (changed [''])" in messages
        assert messages[-1] == "count subscription removed"

    def test_silent_by_default(self, caplog):
        with caplog.at_level(logging.INFO, logger="atomx.devtools"):
            create_atom(1).set(2)
        assert caplog.records == []
