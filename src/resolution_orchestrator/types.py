"""Type definitions for the resolution orchestrator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from common.geocoding import Coordinates
from record_source.types import ClientRecord


class ResolutionState(str, Enum):
    """Phases of one resolution cycle."""

    IDLE = "idle"
    LOADING_RECORDS = "loading_records"
    RESOLVING_COORDINATES = "resolving_coordinates"


@dataclass(frozen=True)
class ResolutionSnapshot:
    """Full replacement published to the presentation layer."""

    records: list[ClientRecord] = field(default_factory=list)
    is_loading_records: bool = False
    is_resolving_coordinates: bool = False
    error: str | None = None


class Resolver(Protocol):
    """A geocoding strategy the orchestrator can dispatch to."""

    name: str

    @property
    def available(self) -> bool: ...

    async def resolve(self, address: str) -> Coordinates | None: ...

    async def resolve_batch(self, addresses: list[str]) -> dict[str, Coordinates]: ...


class RecordLoader(Protocol):
    """Anything that can fetch the client records for a source URL."""

    async def fetch(self, url: str) -> list[ClientRecord]: ...
