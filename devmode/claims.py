"""Claims reported by ``wash inspect`` for built actor and provider artifacts."""

from __future__ import annotations

import json
from typing import Any, ClassVar, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from devmode.logger import ClaimsKindError, InspectionError
from devmode.manifest import ComponentKind


def _split_messy_list(value: Any) -> Any:
    # Older claims serialise lists as a comma-delimited string
    if value is None:
        return []
    if isinstance(value, str):
        return [item for item in value.split(",") if item]
    return value


class _Claims(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    kind: ClassVar[ComponentKind]

    # Subclasses expose the key used to stop a running instance as `identity`

    def as_actor(self) -> "ActorClaims":
        raise ClaimsKindError(f"Claims for {self.identity} describe a {self.kind.value}, not an Actor")

    def as_provider(self) -> "ProviderClaims":
        raise ClaimsKindError(f"Claims for {self.identity} describe a {self.kind.value}, not a Provider")


class ActorClaims(_Claims):
    kind: ClassVar[ComponentKind] = ComponentKind.ACTOR

    module: str
    name: str = ""
    call_alias: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list, alias="caps")
    tags: List[str] = Field(default_factory=list)
    issuer: Optional[str] = Field(default=None, alias="iss")
    subject: Optional[str] = Field(default=None, alias="sub")
    revision: Optional[int] = Field(default=None, alias="rev")
    version: Optional[str] = None

    @field_validator("capabilities", "tags", mode="before")
    @classmethod
    def split_lists(cls, value: Any) -> Any:
        return _split_messy_list(value)

    @property
    def identity(self) -> str:
        return self.module

    def as_actor(self) -> "ActorClaims":
        return self


class ProviderClaims(_Claims):
    kind: ClassVar[ComponentKind] = ComponentKind.PROVIDER

    service: str
    capability_contract_id: str
    name: str = ""
    issuer: Optional[str] = Field(default=None, alias="iss")
    revision: Optional[str] = Field(default=None, alias="rev")
    version: Optional[str] = None
    vendor: Optional[str] = None
    targets: List[str] = Field(default_factory=list)
    config_schema: Optional[str] = None

    @field_validator("revision", mode="before")
    @classmethod
    def _revision_as_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @property
    def identity(self) -> str:
        return self.service

    def as_provider(self) -> "ProviderClaims":
        return self


ComponentClaims = Union[ActorClaims, ProviderClaims]


def parse_claims(payload: Union[str, bytes, dict]) -> ComponentClaims:
    """Decode ``wash inspect -o json`` output into actor or provider claims.

    The actor shape is tried first; a payload matching neither shape raises
    InspectionError.
    """
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise InspectionError(f"Inspection output is not JSON: {exc}") from exc
    else:
        data = payload
    if not isinstance(data, dict):
        raise InspectionError("Inspection output is not a JSON object")

    errors = []
    for model in (ActorClaims, ProviderClaims):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            errors.append(f"{model.kind.value}: {exc.error_count()} error(s)")
    raise InspectionError("Inspection output matches neither actor nor provider claims (" + "; ".join(errors) + ")")
