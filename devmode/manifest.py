"""Application manifest (wadm.yaml) loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from devmode.logger import ManifestError


class ComponentKind(str, Enum):
    ACTOR = "Actor"
    PROVIDER = "Provider"


# wadm component `type` values
_TYPE_TO_KIND = {
    "actor": ComponentKind.ACTOR,
    "capability": ComponentKind.PROVIDER,
}


@dataclass(frozen=True)
class Component:
    """A named unit of the application, backed by an image reference."""

    name: str
    kind: ComponentKind
    image: str
    properties: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Manifest:
    name: str
    components: Tuple[Component, ...]
    version: Optional[str] = None
    path: Optional[Path] = None

    @property
    def label(self) -> str:
        """``name:version`` for log lines."""
        return f"{self.name}:{self.version}" if self.version else self.name


def _parse_component(raw: Any, index: int) -> Component:
    if not isinstance(raw, dict):
        raise ManifestError(f"Component #{index} is not a mapping")
    name = raw.get("name")
    if not name:
        raise ManifestError(f"Component #{index} has no name")
    type_name = str(raw.get("type", "")).strip().lower()
    kind = _TYPE_TO_KIND.get(type_name)
    if kind is None:
        raise ManifestError(f"Component {name!r} has unsupported type {raw.get('type')!r}")
    properties = raw.get("properties") or {}
    if not isinstance(properties, dict) or not properties.get("image"):
        raise ManifestError(f"Component {name!r} has no properties.image")
    return Component(
        name=str(name),
        kind=kind,
        image=str(properties["image"]),
        properties=dict(properties),
    )


def parse_manifest(data: Any, path: Optional[Path] = None) -> Manifest:
    """Build a Manifest from an already-decoded YAML document."""
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a YAML mapping")
    metadata = data.get("metadata") or {}
    name = metadata.get("name") if isinstance(metadata, dict) else None
    if not name:
        raise ManifestError("Manifest has no metadata.name")
    annotations = metadata.get("annotations") or {}
    version = annotations.get("version") if isinstance(annotations, dict) else None

    spec = data.get("spec") or {}
    raw_components = spec.get("components") if isinstance(spec, dict) else None
    if raw_components is None:
        raw_components = []
    if not isinstance(raw_components, list):
        raise ManifestError("spec.components must be a list")

    components = tuple(_parse_component(raw, i) for i, raw in enumerate(raw_components))
    return Manifest(
        name=str(name),
        components=components,
        version=str(version) if version is not None else None,
        path=path,
    )


def load_manifest(path: str | Path) -> Manifest:
    """Read and parse a wadm manifest file.

    Raises:
        ManifestError: if the file is missing, is not valid YAML, or does not
            describe an application.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {p}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML in manifest {p}: {exc}") from exc
    return parse_manifest(data, path=p)
