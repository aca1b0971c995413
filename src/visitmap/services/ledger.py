"""Append-only visit history for a single address."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..errors import ValidationError
from ..models.domain import VisitEntry, normalize_outcomes, now_millis

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CurrentVisit:
    """Projection of the most recent ledger entry."""

    outcomes: tuple[str, ...]
    first_name: Optional[str]
    last_name: Optional[str]
    visited_by: str
    comment: Optional[str]

    @classmethod
    def of(cls, entry: VisitEntry) -> "CurrentVisit":
        return cls(
            outcomes=entry.outcomes,
            first_name=entry.first_name,
            last_name=entry.last_name,
            visited_by=entry.visited_by,
            comment=entry.comment,
        )


def validate_entry(entry: VisitEntry) -> None:
    if not entry.outcomes:
        raise ValidationError("Please select at least one result.")
    if not entry.visited_by.strip():
        raise ValidationError("Please enter who visited.")


class HistoryLedger:
    """Ordered visit entries for one address; the last entry is the current state."""

    def __init__(self, entries: Iterable[VisitEntry] = ()) -> None:
        self._entries: list[VisitEntry] = list(entries)
        self._current: CurrentVisit | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def append(self, entry: VisitEntry) -> CurrentVisit:
        validate_entry(entry)
        self._entries.append(entry)
        self._current = None
        return self.current()

    def current(self) -> CurrentVisit | None:
        if not self._entries:
            return None
        if self._current is None:
            self._current = CurrentVisit.of(self._entries[-1])
        return self._current

    def all(self) -> tuple[VisitEntry, ...]:
        return tuple(self._entries)

    def copy(self) -> "HistoryLedger":
        return HistoryLedger(self._entries)

    def backfill(
        self,
        results: Iterable[Any],
        comment: Optional[str] = None,
        *,
        timestamp: Optional[int] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        visited_by: Optional[str] = None,
    ) -> bool:
        """Synthesize the single entry of a record saved before history existed.

        Legacy records may lack a visitor or even results, so the entry is not
        validated. Does nothing and returns ``False`` when history exists.
        """
        if self._entries:
            return False
        self._entries.append(
            VisitEntry.create(
                results,
                visited_by or "",
                first_name=first_name,
                last_name=last_name,
                comment=comment,
                timestamp=timestamp if timestamp is not None else now_millis(),
            )
        )
        self._current = None
        return True

    @classmethod
    def materialize(cls, data: Mapping[str, Any]) -> tuple["HistoryLedger", bool]:
        """Build a ledger from a stored document.

        Returns the ledger and whether a legacy entry was synthesized from
        top-level ``results``/``comments``.
        """
        stored = data.get("history") or []
        updated_at = data.get("updatedAt")
        fallback_timestamp = int(updated_at) if isinstance(updated_at, (int, float)) else None
        ledger = cls()
        for raw in stored:
            if not isinstance(raw, Mapping):
                logger.warning(f"Skipping malformed history entry: {raw!r}")
                continue
            ledger._entries.append(VisitEntry.from_document(raw, default_timestamp=fallback_timestamp))

        if ledger._entries:
            return ledger, False
        if data.get("results") is None and not data.get("comments"):
            return ledger, False

        migrated = ledger.backfill(
            normalize_outcomes(data.get("results") or ()),
            data.get("comments"),
            timestamp=fallback_timestamp,
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            visited_by=data.get("visitedBy"),
        )
        return ledger, migrated

    def current_document(self) -> dict[str, Any]:
        """Top-level copies of the current projection, kept for querying."""
        current = self.current()
        if current is None:
            return {"results": [], "firstName": "", "lastName": "", "visitedBy": ""}
        return {
            "results": list(current.outcomes),
            "firstName": current.first_name or "",
            "lastName": current.last_name or "",
            "visitedBy": current.visited_by,
        }

    def to_documents(self) -> list[dict[str, Any]]:
        return [entry.to_document() for entry in self._entries]
