import sys
import threading
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so `import devmode...` works locally
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from devmode.claims import ActorClaims, ProviderClaims  # noqa: E402
from devmode.logger import DeployError  # noqa: E402
from devmode.manifest import Component, ComponentKind, Manifest  # noqa: E402


class FakeTools:
    """In-memory PlatformTools recording every call."""

    def __init__(self, claims=None, build_results=None):
        self.claims = dict(claims or {})
        self.build_results = dict(build_results or {})
        self.calls = []
        self._lock = threading.Lock()
        self.stopped = threading.Event()
        self.fail_deploy = False
        self.fail_undeploy = False
        self.hosts = [{"id": "NHOST"}]
        self.inventory = [{"host_id": "NHOST", "actors": [], "providers": []}]

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def names(self):
        return [c[0] for c in self.calls]

    def inspect(self, path):
        self._record("inspect", path)
        return self.claims[path]

    def build_actor(self, path):
        self._record("build_actor", path)
        return self.build_results.get(path, True)

    def build_provider(self, path):
        self._record("build_provider", path)
        return self.build_results.get(path, True)

    def stop_actor(self, actor_id):
        self._record("stop_actor", actor_id)
        self.stopped.set()
        return True

    def stop_provider(self, provider_id, contract_id):
        self._record("stop_provider", provider_id, contract_id)
        self.stopped.set()
        return True

    def put_app(self, manifest_path):
        self._record("put_app", manifest_path)
        if self.fail_deploy:
            raise DeployError("put failed")

    def deploy_app(self, manifest):
        self._record("deploy_app", manifest.name)

    def undeploy_app(self, manifest):
        self._record("undeploy_app", manifest.name)
        if self.fail_undeploy:
            raise DeployError("undeploy failed")

    def delete_app(self, manifest):
        self._record("delete_app", manifest.name)

    def list_hosts(self):
        self._record("list_hosts")
        return self.hosts

    def list_host_inventory(self):
        self._record("list_host_inventory")
        return self.inventory


def actor_claims(module="M-123", name="actor1"):
    return ActorClaims(module=module, name=name, call_alias=None, caps=["wasmcloud:httpserver"], tags=[])


def provider_claims(service="V-456", contract="wasmcloud:keyvalue"):
    return ProviderClaims(service=service, capability_contract_id=contract, name="kv")


@pytest.fixture
def fake_tools():
    return FakeTools()


@pytest.fixture
def make_manifest(tmp_path):
    """Build a Manifest from ``(name, kind, image)`` triples, backed by a real file."""

    def _make(*components, name="echo", version="v0.0.1"):
        path = tmp_path / "wadm.yaml"
        path.write_text("# placeholder\n")
        return Manifest(
            name=name,
            version=version,
            path=path,
            components=tuple(Component(name=n, kind=k, image=i) for n, k, i in components),
        )

    return _make


__all__ = ["FakeTools", "actor_claims", "provider_claims", "ComponentKind"]
