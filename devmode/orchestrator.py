"""The dev session: scan, build, deploy, then rebuild on change until stopped."""

from __future__ import annotations

import queue
from enum import Enum
from typing import Callable, Iterable, Optional

from devmode.dev_core.config import LOGGER
from devmode.dev_core.dispatcher import RebuildDispatcher
from devmode.dev_core.watcher import AffectedPaths, ChangeWatcher, WatchError
from devmode.logger import ConfigurationError, DeployError, DevModeError, PlatformError
from devmode.manifest import ComponentKind, Manifest
from devmode.registry import ComponentRegistry
from devmode.scanner import ManifestScanner
from devmode.shutdown import SHUTDOWN, ShutdownHandler
from devmode.subprocess_manager import cleanup_all_processes
from devmode.wash import PlatformTools, canonical_manifest_path


class SessionState(str, Enum):
    SCANNING = "scanning"
    INITIAL_BUILDING = "initial_building"
    DEPLOYING = "deploying"
    WATCHING = "watching"
    CLEANING_UP = "cleaning_up"
    TERMINATED = "terminated"
    FAILED = "failed"


# Upper bound on how long a signal waits to be noticed by the watch loop
_WAKE_SECS = 0.5

WatcherFactory = Callable[[Iterable[str], "queue.Queue"], ChangeWatcher]


class DevSession:
    """Simple dev mode for one application manifest.

    Tracks every component whose image uses the ``file://`` scheme, builds
    them, deploys the application and then watches each component's ``src``
    folder. A change rebuilds the component and stops its running instance;
    the lattice is self healing, so the instance comes back with the new
    artifact without redeploying the application.
    """

    def __init__(
        self,
        manifest: Manifest,
        tools: PlatformTools,
        *,
        registry: Optional[ComponentRegistry] = None,
        channel: Optional["queue.Queue"] = None,
        shutdown: Optional[ShutdownHandler] = None,
        watcher_factory: Optional[WatcherFactory] = None,
        dispatcher: Optional[RebuildDispatcher] = None,
        install_signals: bool = True,
        debounce: Optional[float] = None,
    ):
        self.manifest = manifest
        self.tools = tools
        self.registry = registry if registry is not None else ComponentRegistry()
        self.channel = channel if channel is not None else queue.Queue()
        self.shutdown = (
            shutdown if shutdown is not None
            else ShutdownHandler(self.channel, on_shutdown=cleanup_all_processes)
        )
        self.watcher_factory = watcher_factory or (
            lambda roots, channel: ChangeWatcher(roots, channel, delay=debounce)
        )
        self.dispatcher = dispatcher or RebuildDispatcher(
            self.registry, tools, cancelled=lambda: self.shutdown.requested
        )
        self.install_signals = install_signals
        self.state = SessionState.SCANNING

    def run(self) -> int:
        """Run the session to completion and return the process exit code.

        Fatal conditions before the watch loop raise a DevModeError subclass.
        Once the application is deployed, cleanup runs however the watch loop
        ends.
        """
        try:
            self.survey()
            self.scan()
            self.initial_build()
            self.deploy()
        except DevModeError:
            self.state = SessionState.FAILED
            raise
        failed = False
        try:
            self.watch()
        except Exception:
            failed = True
            LOGGER.exception("Watch loop failed")
            raise
        finally:
            self.cleanup()
            if failed:
                self.state = SessionState.FAILED
        return 0

    def survey(self) -> None:
        """Log what is currently running on the lattice."""
        try:
            hosts = self.tools.list_hosts()
            inventory = self.tools.list_host_inventory()
        except PlatformError as exc:
            LOGGER.warning(f"Could not read lattice state: {exc}")
            return
        actors = sum(len(inv.get("actors") or []) for inv in inventory)
        providers = sum(len(inv.get("providers") or []) for inv in inventory)
        LOGGER.info(f"Lattice has {len(hosts)} host(s) running {actors} actor(s) and {providers} provider(s)")

    def scan(self) -> ComponentRegistry:
        self.state = SessionState.SCANNING
        ManifestScanner(self.tools).scan(self.manifest, self.registry)
        if self.registry.is_empty():
            raise ConfigurationError("No local actors or providers found in manifest. Cannot run dev mode")
        return self.registry

    def initial_build(self) -> None:
        """Build every component once. Failures are logged and do not stop the others."""
        self.state = SessionState.INITIAL_BUILDING
        for path, entry in self.registry.items():
            if entry.kind is ComponentKind.ACTOR:
                LOGGER.info(f"Building actor: {path}")
                ok = self.tools.build_actor(path)
            else:
                LOGGER.info(f"Building provider: {path}")
                ok = self.tools.build_provider(path)
            if not ok:
                LOGGER.warning(f"Initial build of {entry.component.name!r} failed; fix it and save to retry")

    def deploy(self) -> None:
        self.state = SessionState.DEPLOYING
        self.tools.put_app(canonical_manifest_path(self.manifest))
        self.tools.deploy_app(self.manifest)

    def watch(self) -> None:
        """Block on the change channel until shutdown is requested."""
        self.state = SessionState.WATCHING
        if self.install_signals:
            self.shutdown.install()
        watcher = None
        try:
            watcher = self.watcher_factory(self.registry.all_paths(), self.channel)
            watcher.start()
            LOGGER.info(f"Dev mode running for {self.manifest.label}; press Ctrl-C to stop")
            while not self.shutdown.requested:
                try:
                    message = self.channel.get(timeout=_WAKE_SECS)
                except queue.Empty:
                    continue
                if message is SHUTDOWN:
                    break
                if isinstance(message, WatchError):
                    LOGGER.error(f"Watch error: {message.message}")
                elif isinstance(message, AffectedPaths):
                    self.dispatcher.dispatch(message.paths)
                else:
                    LOGGER.warning(f"Ignoring unexpected watch message {message!r}")
        finally:
            if watcher is not None:
                watcher.stop()
            if self.install_signals:
                self.shutdown.uninstall()

    def cleanup(self) -> None:
        """Undeploy and delete the application. Errors are logged, not raised."""
        self.state = SessionState.CLEANING_UP
        LOGGER.info("Cleaning up")
        stopped = cleanup_all_processes()
        if stopped:
            LOGGER.info(f"Terminated {stopped} build process(es) still running")
        for step in (self.tools.undeploy_app, self.tools.delete_app):
            try:
                step(self.manifest)
            except DeployError as exc:
                LOGGER.error(str(exc))
        self.state = SessionState.TERMINATED
