"""Type definitions for client records."""

from dataclasses import dataclass, replace
from typing import Literal

from common.geocoding import Coordinates

LegalForm = Literal["Corporation", "Individual"]


@dataclass(frozen=True)
class ClientRecord:
    """
    One business client as loaded from the record source.

    Records are rebuilt from scratch on every load; `id` is only stable
    within one load cycle. `coordinate` stays None until resolved, and a
    record with an empty address never gets one.
    """

    id: str
    name: str
    representative: str
    business_type: str
    category: str
    legal_form: LegalForm
    address: str
    business_number: str
    phone: str
    coordinate: Coordinates | None = None

    @property
    def has_coordinate(self) -> bool:
        return self.coordinate is not None

    def with_coordinate(self, coordinate: Coordinates) -> "ClientRecord":
        """Return a copy of this record carrying the given coordinate."""
        if not self.address.strip():
            return self
        return replace(self, coordinate=coordinate)
