"""Domain models for addresses, visit entries and outcome vocabulary."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

if TYPE_CHECKING:
    from ..services.ledger import HistoryLedger


class OutcomeTag(str, Enum):
    """Fixed vocabulary offered to volunteers when recording a visit."""

    NO_ANSWER = "No Answer"
    BUSY = "Busy"
    SHARED_GOSPEL = "Shared Gospel"
    INVITED_TO_CHURCH = "Invited to Church"
    ATTENDS_ANOTHER_CHURCH = "Attends Another Church"
    BELIEVER = "Believer"
    REQUESTED_NO_CONTACT = "Requested No Contact"
    NO_SOLICITING = "No Soliciting"
    FOLLOW_UP = "Follow Up"
    LIMITED_ENGLISH = "Limited English"


class ColorCategory(str, Enum):
    """Pin colors, declared in classification priority order."""

    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    GREY = "grey"
    BLUE = "blue"


ALL_COLORS: tuple[ColorCategory, ...] = tuple(ColorCategory)


def now_millis() -> int:
    return int(time.time() * 1000)


def normalize_outcomes(outcomes: Iterable[Any]) -> tuple[str, ...]:
    """Return outcome labels as plain strings, de-duplicated, in first-seen order.

    Enum members are reduced to their value so that ``OutcomeTag.BUSY`` and
    ``"Busy"`` compare equal. Unknown labels are kept as given.
    """
    seen: dict[str, None] = {}
    for outcome in outcomes:
        label = outcome.value if isinstance(outcome, Enum) else str(outcome)
        label = label.strip()
        if label:
            seen.setdefault(label, None)
    return tuple(seen)


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _optional(value: Any) -> Optional[str]:
    text = _clean(value)
    return text or None


@dataclass(frozen=True, slots=True)
class Coordinates:
    lat: float
    lon: float

    def to_document(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> Optional["Coordinates"]:
        if not data:
            return None
        try:
            return cls(lat=float(data["lat"]), lon=float(data["lon"]))
        except (KeyError, TypeError, ValueError):
            return None


@dataclass(frozen=True, slots=True)
class AddressFields:
    """Postal address parts, as typed by a volunteer or returned by reverse geocoding."""

    house_number: str = ""
    street_name: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    def formatted(self) -> str:
        return f"{self.house_number} {self.street_name}, {self.city}, {self.state} {self.zip}"

    def missing(self) -> list[str]:
        """Names (as persisted) of required parts that are blank."""
        return [name for name, value in self.to_document().items() if not value.strip()]

    def cleaned(self) -> "AddressFields":
        return AddressFields(
            house_number=_clean(self.house_number),
            street_name=_clean(self.street_name),
            city=_clean(self.city),
            state=_clean(self.state),
            zip=_clean(self.zip),
        )

    def to_document(self) -> dict[str, str]:
        return {
            "houseNumber": self.house_number,
            "streetName": self.street_name,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "AddressFields":
        return cls(
            house_number=_clean(data.get("houseNumber")),
            street_name=_clean(data.get("streetName")),
            city=_clean(data.get("city")),
            state=_clean(data.get("state")),
            zip=_clean(data.get("zip")),
        )


@dataclass(frozen=True, slots=True)
class VisitEntry:
    """One recorded visit. Never mutated once appended to a ledger."""

    timestamp: int
    outcomes: tuple[str, ...]
    visited_by: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    comment: Optional[str] = None

    @classmethod
    def create(
        cls,
        outcomes: Iterable[Any],
        visited_by: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        comment: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> "VisitEntry":
        return cls(
            timestamp=timestamp if timestamp is not None else now_millis(),
            outcomes=normalize_outcomes(outcomes),
            visited_by=_clean(visited_by),
            first_name=_optional(first_name),
            last_name=_optional(last_name),
            comment=_optional(comment),
        )

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_document(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "firstName": self.first_name or "",
            "lastName": self.last_name or "",
            "results": list(self.outcomes),
            "visitedBy": self.visited_by,
            "comment": self.comment or "",
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any], *, default_timestamp: Optional[int] = None) -> "VisitEntry":
        timestamp = data.get("timestamp")
        try:
            timestamp = int(timestamp)
        except (TypeError, ValueError):
            timestamp = default_timestamp if default_timestamp is not None else now_millis()
        return cls(
            timestamp=timestamp,
            outcomes=normalize_outcomes(data.get("results") or ()),
            visited_by=_clean(data.get("visitedBy")),
            first_name=_optional(data.get("firstName")),
            last_name=_optional(data.get("lastName")),
            comment=_optional(data.get("comment")),
        )


@dataclass(slots=True)
class AddressRecord:
    """An address known to the registry, owning its visit history.

    The ``current_*`` values are read from the ledger's last entry on every
    access, so they cannot drift from ``history``.
    """

    id: str
    house_number: str
    street_name: str
    city: str
    state: str
    zip: str
    ledger: "HistoryLedger"
    coordinates: Optional[Coordinates] = None
    updated_at: Optional[int] = None

    @property
    def fields(self) -> AddressFields:
        return AddressFields(
            house_number=self.house_number,
            street_name=self.street_name,
            city=self.city,
            state=self.state,
            zip=self.zip,
        )

    @property
    def history(self) -> tuple[VisitEntry, ...]:
        return self.ledger.all()

    @property
    def last_entry(self) -> Optional[VisitEntry]:
        entries = self.ledger.all()
        return entries[-1] if entries else None

    @property
    def current_outcomes(self) -> tuple[str, ...]:
        current = self.ledger.current()
        return current.outcomes if current else ()

    @property
    def current_first_name(self) -> Optional[str]:
        current = self.ledger.current()
        return current.first_name if current else None

    @property
    def current_last_name(self) -> Optional[str]:
        current = self.ledger.current()
        return current.last_name if current else None

    @property
    def current_visited_by(self) -> Optional[str]:
        current = self.ledger.current()
        return current.visited_by if current else None

    def to_document(self) -> dict[str, Any]:
        """Full persisted shape (without ``id``, which the store owns)."""
        document: dict[str, Any] = dict(self.fields.to_document())
        document["coordinates"] = self.coordinates.to_document() if self.coordinates else None
        document["updatedAt"] = self.updated_at
        document.update(self.ledger.current_document())
        document["history"] = self.ledger.to_documents()
        return document
