"""Maps affected source roots to rebuild-and-restart actions.

Restarting is done by stopping the running instance only: the platform
reconciles against the deployed manifest and relaunches the component from
the freshly built artifact.

Actor rebuilds run on detached daemon threads that are never joined. Their
outcome is only logged; nothing flows back into the loop. This keeps the loop
responsive while an actor builds. Provider rebuilds run inline and block the
loop, so two builds of the same provider never overlap.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from devmode.claims import ActorClaims, ProviderClaims
from devmode.logger import ContextLogger
from devmode.manifest import ComponentKind
from devmode.registry import ComponentRegistry

from .config import LOGGER

if TYPE_CHECKING:
    from devmode.wash import PlatformTools


Spawner = Callable[..., None]


def spawn_detached(target: Callable[..., None], *args) -> None:
    """Run ``target(*args)`` on a daemon thread that nobody joins."""
    t = threading.Thread(target=target, args=args, daemon=True, name="actor-rebuild")
    t.start()


class RebuildDispatcher:
    def __init__(
        self,
        registry: ComponentRegistry,
        tools: "PlatformTools",
        spawn: Spawner = spawn_detached,
        cancelled: Optional[Callable[[], bool]] = None,
    ):
        self.registry = registry
        self.tools = tools
        self.spawn = spawn
        # Once true, remaining rebuilds are skipped and finished builds do not restart anything
        self.cancelled = cancelled or (lambda: False)

    def dispatch(self, paths: Iterable[str]) -> None:
        for path in sorted(paths):
            if self.cancelled():
                LOGGER.info("Shutting down; skipping remaining rebuilds")
                return
            entry = self.registry.get_by_path(path)
            if entry is None:
                LOGGER.error(f"No registered component for changed path {path}")
                continue
            log = ContextLogger(LOGGER, component=entry.component.name, path=path)
            if entry.kind is ComponentKind.ACTOR:
                claims = entry.claims.as_actor()
                log.info(f"Rebuilding actor: {entry.component.image}")
                self.spawn(self._rebuild_actor, path, claims, log)
            else:
                claims = entry.claims.as_provider()
                log.info(f"Rebuilding provider: {entry.component.image}")
                self._rebuild_provider(path, claims, log)

    def _rebuild_actor(self, path: str, claims: ActorClaims, log: ContextLogger) -> None:
        try:
            ok = self.tools.build_actor(path)
            if self.cancelled():
                log.info("Shutting down; not restarting actor")
            elif ok:
                self.tools.stop_actor(claims.module)
            else:
                log.error(f"Actor build failed; {claims.module} keeps running the previous artifact")
        except Exception:
            log.exception(f"Actor rebuild raised for {path}")

    def _rebuild_provider(self, path: str, claims: ProviderClaims, log: ContextLogger) -> None:
        try:
            ok = self.tools.build_provider(path)
            if self.cancelled():
                log.info("Shutting down; not restarting provider")
            elif ok:
                self.tools.stop_provider(claims.service, claims.capability_contract_id)
            else:
                log.error(f"Provider build failed; {claims.service} keeps running the previous artifact")
        except Exception:
            log.exception(f"Provider rebuild raised for {path}")
