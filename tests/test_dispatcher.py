import pytest

from conftest import FakeTools, actor_claims, provider_claims
from devmode.dev_core.dispatcher import RebuildDispatcher
from devmode.manifest import Component, ComponentKind
from devmode.registry import ComponentRegistry


def inline(target, *args):
    target(*args)


@pytest.fixture
def registry():
    reg = ComponentRegistry()
    reg.insert(
        "A1", "/w/actor1", "M-123",
        Component("A1", ComponentKind.ACTOR, "file:///w/actor1/build/actor1.wasm"),
        actor_claims("M-123"),
    )
    reg.insert(
        "kv", "/w/kv", "V-456",
        Component("kv", ComponentKind.PROVIDER, "file:///w/kv/build/kv.par.gz"),
        provider_claims("V-456", "wasmcloud:keyvalue"),
    )
    return reg


@pytest.mark.unit
def test_actor_rebuild_success_stops_actor(registry):
    tools = FakeTools()
    RebuildDispatcher(registry, tools, spawn=inline).dispatch({"/w/actor1"})
    assert tools.calls == [("build_actor", "/w/actor1"), ("stop_actor", "M-123")]


@pytest.mark.unit
def test_actor_build_failure_never_stops(registry):
    tools = FakeTools(build_results={"/w/actor1": False})
    RebuildDispatcher(registry, tools, spawn=inline).dispatch({"/w/actor1"})
    assert tools.calls == [("build_actor", "/w/actor1")]


@pytest.mark.unit
def test_provider_rebuild_success_stops_provider(registry):
    tools = FakeTools()
    RebuildDispatcher(registry, tools, spawn=inline).dispatch({"/w/kv"})
    assert tools.calls == [("build_provider", "/w/kv"), ("stop_provider", "V-456", "wasmcloud:keyvalue")]


@pytest.mark.unit
def test_provider_build_failure_never_stops(registry):
    tools = FakeTools(build_results={"/w/kv": False})
    dispatcher = RebuildDispatcher(registry, tools, spawn=inline)
    dispatcher.dispatch({"/w/kv"})
    # the next batch is accepted right away
    dispatcher.dispatch({"/w/kv"})
    assert tools.names() == ["build_provider", "build_provider"]


@pytest.mark.unit
def test_actor_rebuild_is_detached_but_provider_is_inline(registry):
    tools = FakeTools()
    spawned = []
    dispatcher = RebuildDispatcher(registry, tools, spawn=lambda fn, *a: spawned.append((fn, a)))

    dispatcher.dispatch({"/w/actor1", "/w/kv"})

    # provider built inline; actor build only handed to the spawner
    assert tools.names() == ["build_provider", "stop_provider"]
    assert len(spawned) == 1
    fn, args = spawned[0]
    fn(*args)
    assert tools.names()[-2:] == ["build_actor", "stop_actor"]


@pytest.mark.unit
def test_default_spawner_runs_on_background_thread(registry):
    tools = FakeTools()
    RebuildDispatcher(registry, tools).dispatch({"/w/actor1"})
    assert tools.stopped.wait(2)
    assert ("stop_actor", "M-123") in tools.calls


@pytest.mark.unit
def test_exceptions_from_tools_are_logged_not_raised(registry):
    class Exploding(FakeTools):
        def build_provider(self, path):
            raise RuntimeError("make exploded")

    tools = Exploding()
    RebuildDispatcher(registry, tools, spawn=inline).dispatch({"/w/kv", "/w/unknown"})
    assert "stop_provider" not in tools.names()


@pytest.mark.unit
def test_cancelled_dispatch_builds_but_never_restarts(registry):
    stopping = []

    class CancelDuringBuild(FakeTools):
        def build_actor(self, path):
            stopping.append(True)
            return super().build_actor(path)

    tools = CancelDuringBuild()
    dispatcher = RebuildDispatcher(registry, tools, spawn=inline, cancelled=lambda: bool(stopping))
    dispatcher.dispatch({"/w/actor1", "/w/kv"})

    # actor build finished after shutdown began: no stop, and the provider is skipped
    assert tools.names() == ["build_actor"]
