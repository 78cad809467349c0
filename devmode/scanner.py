"""Manifest scan: find locally built components and register them."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional

from devmode.dev_core.config import LOCAL_SCHEME, LOGGER
from devmode.logger import ClaimsKindError
from devmode.manifest import Manifest
from devmode.registry import ComponentRegistry

if TYPE_CHECKING:
    from devmode.wash import PlatformTools

# Build outputs live under <root>/build/; stripping them yields the source root
_ACTOR_ARTIFACT_RE = re.compile(r"/build/[^/]+\.wasm$")
_PROVIDER_ARTIFACT_RE = re.compile(r"/build/[^/]+\.par\.gz$")


def is_local_image(image: str) -> bool:
    return image.startswith(LOCAL_SCHEME)


def strip_scheme(image: str) -> str:
    return image[len(LOCAL_SCHEME):] if is_local_image(image) else image


def normalize_artifact_path(raw_path: str) -> str:
    """Map an artifact path such as ``/x/echo/build/echo_s.wasm`` to ``/x/echo``."""
    path = _ACTOR_ARTIFACT_RE.sub("", raw_path)
    return _PROVIDER_ARTIFACT_RE.sub("", path)


class ManifestScanner:
    def __init__(self, tools: "PlatformTools"):
        self.tools = tools

    def scan(self, manifest: Manifest, registry: Optional[ComponentRegistry] = None) -> ComponentRegistry:
        """Inspect every local component of ``manifest`` into ``registry``.

        Raises:
            ClaimsKindError: when an artifact's claims are of a different kind
                than the component declaring it. Nothing is registered for
                that component.
            InspectionError: propagated from the inspection itself.
        """
        registry = registry if registry is not None else ComponentRegistry()
        for component in manifest.components:
            if not is_local_image(component.image):
                LOGGER.info(f"Skipping non local component in: {component.image}")
                continue

            artifact_path = strip_scheme(component.image)
            claims = self.tools.inspect(artifact_path)
            if claims.kind != component.kind:
                raise ClaimsKindError(
                    f"Image {component.image} is declared as {component.kind.value} "
                    f"{component.name!r} but inspects as {claims.kind.value}"
                )

            source_root = normalize_artifact_path(artifact_path)
            registry.insert(component.name, source_root, claims.identity, component, claims)
            LOGGER.info(
                f"Registered {component.kind.value.lower()} {component.name!r} "
                f"at {source_root} ({claims.identity})"
            )
        return registry
