"""WashTools command construction and failure handling, with subprocesses stubbed."""
import json

import pytest

import devmode.wash as wash
from devmode.claims import ActorClaims
from devmode.logger import DeployError, InspectionError, PlatformError, ToolMissingError
from devmode.manifest import Manifest


def ok(stdout=""):
    return {"ok": True, "code": 0, "stdout": stdout, "stderr": ""}


def fail(stderr="boom"):
    return {"ok": False, "code": 1, "stdout": "", "stderr": stderr}


@pytest.fixture
def runner(monkeypatch):
    calls = []
    results = []

    def fake_run(cmd, timeout=None, env=None, cwd=None):
        calls.append((cmd, cwd))
        return results.pop(0) if results else ok()

    monkeypatch.setattr(wash, "run_subprocess_sync", fake_run)
    return calls, results


@pytest.fixture
def manifest(tmp_path):
    return Manifest(name="echo", version="v1", components=(), path=tmp_path / "wadm.yaml")


@pytest.mark.unit
def test_build_actor_runs_wash_build_in_component_dir(runner):
    calls, results = runner
    tools = wash.WashTools(wash_bin="wash")

    assert tools.build_actor("/w/actor1") is True
    results.append(fail())
    assert tools.build_actor("/w/actor1") is False

    assert calls[0] == (["wash", "build", "-o", "json"], "/w/actor1")


@pytest.mark.unit
def test_build_provider_runs_make(runner):
    calls, results = runner
    tools = wash.WashTools(make_bin="make")
    results.append(fail("compile error"))

    assert tools.build_provider("/w/kv") is False
    assert calls == [(["make"], "/w/kv")]


@pytest.mark.unit
def test_stop_commands_are_best_effort(runner):
    calls, results = runner
    tools = wash.WashTools(wash_bin="wash")
    results.extend([fail(), ok()])

    assert tools.stop_actor("M-123") is False
    assert tools.stop_provider("V-456", "wasmcloud:keyvalue") is True
    assert calls[0][0] == ["wash", "stop", "actor", "M-123", "-o", "json"]
    assert calls[1][0] == ["wash", "stop", "provider", "V-456", "wasmcloud:keyvalue", "-o", "json"]


@pytest.mark.unit
def test_inspect_parses_claims_or_raises(runner):
    calls, results = runner
    tools = wash.WashTools(wash_bin="wash")
    results.append(ok(json.dumps({"module": "M-1", "name": "echo", "tags": "a,b"})))

    claims = tools.inspect("/w/a/build/a.wasm")
    assert isinstance(claims, ActorClaims)
    assert claims.tags == ["a", "b"]
    assert calls[0][0] == ["wash", "inspect", "/w/a/build/a.wasm", "-o", "json"]

    results.append(fail("no such file"))
    with pytest.raises(InspectionError):
        tools.inspect("/w/missing.wasm")


@pytest.mark.unit
def test_app_lifecycle_commands(runner, manifest):
    calls, results = runner
    tools = wash.WashTools(wash_bin="wash")

    tools.put_app("/abs/wadm.yaml")
    tools.deploy_app(manifest)
    tools.undeploy_app(manifest)
    tools.delete_app(manifest)

    assert [c[0] for c in calls] == [
        ["wash", "app", "put", "/abs/wadm.yaml", "-o", "json"],
        ["wash", "app", "deploy", "echo", "-o", "json"],
        ["wash", "app", "undeploy", "echo", "-o", "json"],
        ["wash", "app", "delete", "echo", "--delete-all", "-o", "json"],
    ]

    results.append(fail())
    with pytest.raises(DeployError):
        tools.deploy_app(manifest)


@pytest.mark.unit
def test_lattice_queries(runner):
    calls, results = runner
    tools = wash.WashTools(wash_bin="wash")
    results.append(ok(json.dumps({"success": True, "hosts": [{"id": "N1"}]})))
    results.append(ok(json.dumps({"success": False, "error": "no lattice"})))

    assert tools.list_hosts() == [{"id": "N1"}]
    with pytest.raises(PlatformError, match="no lattice"):
        tools.list_host_inventory()


@pytest.mark.unit
def test_ensure_wash_available(monkeypatch):
    monkeypatch.setattr(wash.shutil, "which", lambda name: None)
    with pytest.raises(ToolMissingError):
        wash.ensure_wash_available("wash")

    monkeypatch.setattr(wash.shutil, "which", lambda name: "/usr/bin/wash")
    assert wash.ensure_wash_available("wash") == "/usr/bin/wash"


@pytest.mark.unit
def test_canonical_manifest_path(manifest):
    assert wash.canonical_manifest_path(manifest) == str(manifest.path.resolve())
    with pytest.raises(DeployError):
        wash.canonical_manifest_path(Manifest(name="x", components=()))
