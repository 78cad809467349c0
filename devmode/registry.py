"""Tri-indexed registry of the locally built components of an application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set

from devmode.claims import ComponentClaims
from devmode.manifest import Component, ComponentKind


@dataclass(frozen=True)
class RegistryEntry:
    component: Component
    claims: ComponentClaims

    @property
    def kind(self) -> ComponentKind:
        return self.component.kind


class ComponentRegistry:
    """Indexes each local component by name, source path and runtime identity.

    All three indices reference the same RegistryEntry object. Entries are
    only ever added, during the scan phase; afterwards the registry is read
    concurrently without locking.
    """

    def __init__(self) -> None:
        self._by_name: Dict[str, RegistryEntry] = {}
        self._by_path: Dict[str, RegistryEntry] = {}
        self._by_identity: Dict[str, RegistryEntry] = {}

    def insert(
        self,
        name: str,
        path: str,
        identity: str,
        component: Component,
        claims: ComponentClaims,
    ) -> RegistryEntry:
        entry = RegistryEntry(component=component, claims=claims)
        self._by_name[name] = entry
        self._by_path[path] = entry
        self._by_identity[identity] = entry
        return entry

    def get_by_name(self, name: str) -> Optional[RegistryEntry]:
        return self._by_name.get(name)

    def get_by_path(self, path: str) -> Optional[RegistryEntry]:
        return self._by_path.get(path)

    def get_by_identity(self, identity: str) -> Optional[RegistryEntry]:
        return self._by_identity.get(identity)

    def is_empty(self) -> bool:
        return not self._by_path

    def all_paths(self) -> Set[str]:
        return set(self._by_path)

    def items(self) -> List[tuple[str, RegistryEntry]]:
        """``(path, entry)`` pairs in registration order."""
        return list(self._by_path.items())

    def __len__(self) -> int:
        return len(self._by_path)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._by_path))
