"""External platform operations.

Everything the dev loop does to the outside world goes through a
``PlatformTools`` object. ``WashTools`` implements it with the ``wash`` CLI
(and ``make`` for provider builds); tests substitute fakes.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from devmode.claims import ComponentClaims, parse_claims
from devmode.dev_core.config import LOGGER, MAKE_BIN, WASH_BIN
from devmode.logger import DeployError, InspectionError, PlatformError, ToolMissingError
from devmode.manifest import Manifest
from devmode.subprocess_manager import run_subprocess_sync


class PlatformTools(Protocol):
    def inspect(self, path: str) -> ComponentClaims: ...

    def build_actor(self, path: str) -> bool: ...

    def build_provider(self, path: str) -> bool: ...

    def stop_actor(self, actor_id: str) -> bool: ...

    def stop_provider(self, provider_id: str, contract_id: str) -> bool: ...

    def put_app(self, manifest_path: str) -> None: ...

    def deploy_app(self, manifest: Manifest) -> None: ...

    def undeploy_app(self, manifest: Manifest) -> None: ...

    def delete_app(self, manifest: Manifest) -> None: ...

    def list_hosts(self) -> List[Dict[str, Any]]: ...

    def list_host_inventory(self) -> List[Dict[str, Any]]: ...


def ensure_wash_available(wash_bin: str = WASH_BIN) -> str:
    """Return the resolved path of the wash binary or raise ToolMissingError."""
    found = shutil.which(wash_bin)
    if not found:
        raise ToolMissingError(f"Please install wash cli to use this tool ({wash_bin!r} not found on PATH)")
    return found


def _stderr_or_code(result: Dict[str, Any]) -> str:
    return (result.get("stderr") or "").strip() or f"exit code {result.get('code')}"


class WashTools:
    """PlatformTools backed by the wash CLI."""

    def __init__(
        self,
        wash_bin: str = WASH_BIN,
        make_bin: str = MAKE_BIN,
        timeout: Optional[float] = None,
    ):
        self.wash_bin = wash_bin
        self.make_bin = make_bin
        self.timeout = timeout

    def _run(self, args: List[str], cwd: Optional[str] = None) -> Dict[str, Any]:
        return run_subprocess_sync(args, timeout=self.timeout, cwd=cwd)

    def _wash(self, *args: str, cwd: Optional[str] = None) -> Dict[str, Any]:
        return self._run([self.wash_bin, *args, "-o", "json"], cwd=cwd)

    def _log_stdout(self, result: Dict[str, Any]) -> None:
        out = (result.get("stdout") or "").strip()
        if out:
            LOGGER.debug(out)

    # -- inspection -------------------------------------------------------

    def inspect(self, path: str) -> ComponentClaims:
        LOGGER.info(f"Getting image information for image file: {path}")
        result = self._wash("inspect", path)
        if not result["ok"]:
            raise InspectionError(f"wash inspect failed for {path}: {_stderr_or_code(result)}")
        self._log_stdout(result)
        return parse_claims(result["stdout"])

    # -- builds: never raise, report success ------------------------------

    def build_actor(self, path: str) -> bool:
        LOGGER.info(f"Building actor at {path!r}")
        result = self._wash("build", cwd=path)
        if result["ok"]:
            LOGGER.info(f"Actor at {path!r} built successfully")
            self._log_stdout(result)
            return True
        # A failing build is expected while editing; the next change retries it
        LOGGER.error(f"Actor build failed at {path!r}: {_stderr_or_code(result)}")
        return False

    def build_provider(self, path: str) -> bool:
        LOGGER.info(f"Building provider at {path!r}")
        result = self._run([self.make_bin], cwd=path)
        if result["ok"]:
            LOGGER.info(f"Provider at {path!r} built successfully")
            self._log_stdout(result)
            return True
        LOGGER.error(f"Provider build failed at {path!r}: {_stderr_or_code(result)}")
        return False

    # -- runtime control: best effort -------------------------------------

    def stop_actor(self, actor_id: str) -> bool:
        LOGGER.info(f"Stopping actor {actor_id!r}")
        result = self._wash("stop", "actor", actor_id)
        if result["ok"]:
            LOGGER.info(f"Actor with ID {actor_id!r} stopped")
            self._log_stdout(result)
            return True
        LOGGER.error(f"Failed to stop actor {actor_id!r}: {_stderr_or_code(result)}")
        return False

    def stop_provider(self, provider_id: str, contract_id: str) -> bool:
        LOGGER.info(f"Stopping provider {provider_id!r}")
        result = self._wash("stop", "provider", provider_id, contract_id)
        if result["ok"]:
            LOGGER.info(f"Provider with ID {provider_id!r} stopped")
            self._log_stdout(result)
            return True
        LOGGER.error(f"Failed to stop provider {provider_id!r}: {_stderr_or_code(result)}")
        return False

    # -- application lifecycle: raise DeployError --------------------------

    def put_app(self, manifest_path: str) -> None:
        LOGGER.info(f"Putting App Spec for: {manifest_path}")
        result = self._wash("app", "put", manifest_path)
        if not result["ok"]:
            raise DeployError(f"wash app put failed: {_stderr_or_code(result)}")
        LOGGER.info("App model successfully added")
        self._log_stdout(result)

    def deploy_app(self, manifest: Manifest) -> None:
        LOGGER.info(f"Deploying App {manifest.label}")
        result = self._wash("app", "deploy", manifest.name)
        if not result["ok"]:
            raise DeployError(f"wash app deploy failed for {manifest.label}: {_stderr_or_code(result)}")
        LOGGER.info(f"Application {manifest.label} deployed successfully")
        self._log_stdout(result)

    def undeploy_app(self, manifest: Manifest) -> None:
        LOGGER.info(f"Undeploying App {manifest.name}")
        result = self._wash("app", "undeploy", manifest.name)
        if not result["ok"]:
            raise DeployError(f"wash app undeploy failed for {manifest.name}: {_stderr_or_code(result)}")
        LOGGER.info(f"Application {manifest.name} undeployed successfully")
        self._log_stdout(result)

    def delete_app(self, manifest: Manifest) -> None:
        LOGGER.info(f"Deleting App {manifest.name}")
        result = self._wash("app", "delete", manifest.name, "--delete-all")
        if not result["ok"]:
            raise DeployError(f"wash app delete failed for {manifest.name}: {_stderr_or_code(result)}")
        LOGGER.info(f"Application {manifest.name} deleted successfully")
        self._log_stdout(result)

    # -- lattice state ------------------------------------------------------

    def _get_json(self, what: str, key: str) -> List[Dict[str, Any]]:
        result = self._wash("get", what)
        if not result["ok"]:
            raise PlatformError(f"wash get {what} failed: {_stderr_or_code(result)}")
        try:
            payload = json.loads(result["stdout"])
        except json.JSONDecodeError as exc:
            raise PlatformError(f"wash get {what} returned invalid JSON: {exc}") from exc
        if not payload.get("success"):
            raise PlatformError(payload.get("error") or f"wash get {what} reported failure")
        return list(payload.get(key) or [])

    def list_hosts(self) -> List[Dict[str, Any]]:
        LOGGER.info("Getting current running Hosts...")
        return self._get_json("hosts", "hosts")

    def list_host_inventory(self) -> List[Dict[str, Any]]:
        return self._get_json("inventory", "inventories")


def canonical_manifest_path(manifest: Manifest) -> str:
    if manifest.path is None:
        raise DeployError(f"Manifest {manifest.name} was not loaded from a file")
    return str(Path(manifest.path).resolve())
