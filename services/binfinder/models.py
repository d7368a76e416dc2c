"""
Value types shared by the bin lookup pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

DISPLAY_DATE_FORMAT = "%d/%m/%Y"


@dataclass(frozen=True)
class RawQuery:
    """One incoming lookup: free text, the council it is for, and an optional directory key."""

    text: str
    council_id: str
    privileged_api_key: str | None = None


@dataclass(frozen=True)
class ParsedIntent:
    raw_text: str
    url: str | None = None
    postcode: str | None = None
    uprn: str | None = None
    house_identifier: str = ""
    # True when nothing was recognised and the whole input is being used as the postcode.
    postcode_is_fallback: bool = False


@dataclass(frozen=True)
class AddressCandidate:
    uprn: str
    display_address: str

    def to_dict(self) -> dict:
        return {"uprn": self.uprn, "address": self.display_address}


class Strategy(str, Enum):
    GENERIC_ADAPTER = "generic_adapter"
    STANDARDIZED_API = "standardized_api"


@dataclass(frozen=True)
class DispatchPlan:
    strategy: Strategy
    council_id: str
    target_url: str | None = None
    identifier_args: tuple[tuple[str, str], ...] = ()
    extra_flags: tuple[str, ...] = ()
    used_placeholder_postcode: bool = False

    def identifier(self, flag: str) -> str | None:
        for name, value in self.identifier_args:
            if name == flag:
                return value
        return None


@dataclass(frozen=True, order=True)
class CollectionEntry:
    bin_type: str
    collection_date: date

    def to_dict(self) -> dict:
        return {
            "type": self.bin_type,
            "collectionDate": self.collection_date.strftime(DISPLAY_DATE_FORMAT),
        }
