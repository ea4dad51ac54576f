"""Tests for runtimes and debug introspection."""

import logging

from atomx import Runtime, create_atom, create_derived, create_effect, get_runtime, transaction
from atomx.debug import describe_graph, get_atom_by_id, log_atoms


class TestRuntime:
    def test_use_makes_runtime_current(self, runtime):
        other = Runtime()
        with other.use():
            assert get_runtime() is other
            a = create_atom(1)
        assert get_runtime() is runtime
        assert a.runtime is other
        assert runtime.get_atom(a.id) is None
        assert other.get_atom(a.id) is a

    def test_universes_are_isolated(self):
        other = Runtime()
        with other.use():
            foreign = create_atom(0)
        local = create_atom(0)
        log = []
        foreign.subscribe(lambda: log.append("foreign"))
        local.subscribe(lambda: log.append("local"))

        with transaction():
            foreign.set(1)
            assert log == ["foreign"]  # other runtime is not batching
            local.set(1)
            assert log == ["foreign"]
        assert log == ["foreign", "local"]

    def test_dispose_tears_down(self):
        rt = Runtime()
        with rt.use():
            a = create_atom(1)
            d = create_derived(lambda: a.get() + 1)
            log = []
            create_effect(lambda: log.append(d.get()))
        rt.dispose()
        a.set(5)
        assert log == [2]
        assert rt.registry_size == 0
        assert len(rt.graph) == 0
        assert rt.effects == {}

    def test_custom_scheduler(self, runtime):
        deferred = []
        runtime.set_scheduler(deferred.append)
        log = []
        runtime.batch.schedule(lambda: log.append("ran"))
        assert log == []
        deferred.pop()()
        assert log == ["ran"]


class TestDebug:
    def test_get_atom_by_id(self):
        a = create_atom(0)
        assert get_atom_by_id(a.id) is a
        assert get_atom_by_id(-1) is None

    def test_describe_graph(self):
        a = create_atom(1, name="a")
        d = create_derived(lambda: a.get() * 2, name="double")
        create_effect(lambda: d.get())
        graph = describe_graph()

        kinds = {node["label"]: node["kind"] for node in graph["nodes"] if node["kind"] != "effect"}
        assert kinds == {"a": "atom", "double": "derived"}
        assert {"from": str(d.id), "to": str(a.id), "kind": "depends"} in graph["edges"]
        assert {"from": "effect:1", "to": str(d.id), "kind": "depends"} in graph["edges"]

    def test_log_atoms(self, caplog):
        create_atom({"x": 1}, name="state")
        with caplog.at_level(logging.INFO, logger="atomx.debug"):
            log_atoms()
        assert "atom state = {'x': 1}" in caplog.text
