"""Address registry: the single owner of address records and their ledgers.

Every mutation is committed to the document store first; the in-memory
collection only changes once the store has acknowledged, so readers never
observe state that is not yet durable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Optional

from ..config import settings
from ..errors import GeocodeError, NotFoundError, StoreError, ValidationError
from ..models.domain import AddressFields, AddressRecord, Coordinates, VisitEntry, now_millis
from ..persistence.store import DocumentStore, StoredDocument
from .geocoding import Geocoder
from .ledger import CurrentVisit, HistoryLedger, validate_entry

logger = logging.getLogger(__name__)

EventKind = Literal["added", "removed", "updated", "loaded"]

SUGGESTION_FIELDS = {
    "streetName": "street_name",
    "city": "city",
    "state": "state",
    "zip": "zip",
}


@dataclass(frozen=True, slots=True)
class RegistryEvent:
    kind: EventKind
    record_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LoadSummary:
    total: int
    migrated: int
    backfilled: int
    backfill_failed: int


class AddressRegistry:
    def __init__(
        self,
        store: DocumentStore,
        geocoder: Geocoder,
        collection: str | None = None,
    ) -> None:
        self.store = store
        self.geocoder = geocoder
        self.collection = collection or settings.addresses_table
        self._records: dict[str, AddressRecord] = {}
        self._listeners: list[Callable[[RegistryEvent], None]] = []

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def subscribe(self, listener: Callable[[RegistryEvent], None]) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: EventKind, record_id: str | None = None) -> None:
        event = RegistryEvent(kind=kind, record_id=record_id)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Registry listener failed for {event}")

    def find_by_id(self, record_id: str) -> AddressRecord | None:
        return self._records.get(record_id)

    def list_all(self) -> list[AddressRecord]:
        return list(self._records.values())

    def _require(self, record_id: str) -> AddressRecord:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Address '{record_id}' not found.")
        return record

    def add(
        self,
        fields: AddressFields,
        first_entry: VisitEntry,
        coordinates: Coordinates | None = None,
    ) -> AddressRecord:
        """Geocode (when needed), persist and register a new address."""
        fields = fields.cleaned()
        missing = fields.missing()
        if missing:
            raise ValidationError(f"Please enter {', '.join(missing)}.")
        validate_entry(first_entry)

        if coordinates is None:
            coordinates = self.geocoder.forward(fields.formatted())
            if coordinates is None:
                raise GeocodeError(f"Could not find address: {fields.formatted()}")

        ledger = HistoryLedger()
        ledger.append(first_entry)
        updated_at = now_millis()
        draft = AddressRecord(
            id="",
            house_number=fields.house_number,
            street_name=fields.street_name,
            city=fields.city,
            state=fields.state,
            zip=fields.zip,
            ledger=ledger,
            coordinates=coordinates,
            updated_at=updated_at,
        )
        record_id = self.store.create(self.collection, draft.to_document())
        draft.id = record_id
        self._records[record_id] = draft
        logger.info(f"Added address {record_id}: {fields.formatted()}")
        self._notify("added", record_id)
        return draft

    def remove(self, record_id: str) -> None:
        self._require(record_id)
        self.store.delete(self.collection, record_id)
        del self._records[record_id]
        logger.info(f"Removed address {record_id}")
        self._notify("removed", record_id)

    def add_history_entry(self, record_id: str, entry: VisitEntry) -> CurrentVisit:
        """Append a visit to an address and persist its full history."""
        record = self._require(record_id)
        candidate = record.ledger.copy()
        current = candidate.append(entry)
        updated_at = now_millis()

        partial: dict[str, Any] = dict(candidate.current_document())
        partial["history"] = candidate.to_documents()
        partial["updatedAt"] = updated_at
        self.store.update(self.collection, record_id, partial)

        record.ledger = candidate
        record.updated_at = updated_at
        self._notify("updated", record_id)
        return current

    def backfill_coordinates(self, record: AddressRecord) -> bool:
        """Geocode a record missing coordinates. Never raises; returns whether it was updated."""
        if record.coordinates is not None:
            return False
        address_text = record.fields.formatted()
        try:
            coordinates = self.geocoder.forward(address_text)
            if coordinates is None:
                logger.warning(f"Could not geocode address {record.id}: {address_text}")
                return False
            updated_at = now_millis()
            self.store.update(
                self.collection,
                record.id,
                {"coordinates": coordinates.to_document(), "updatedAt": updated_at},
            )
        except (GeocodeError, StoreError) as exc:
            logger.warning(f"Error updating coordinates for address {record.id}: {exc}")
            return False
        except Exception:
            logger.exception(f"Unexpected error geocoding address {record.id}")
            return False

        record.coordinates = coordinates
        record.updated_at = updated_at
        self._notify("updated", record.id)
        return True

    def _record_from_document(self, document: StoredDocument) -> tuple[AddressRecord, bool]:
        data = document.data
        ledger, migrated = HistoryLedger.materialize(data)
        fields = AddressFields.from_document(data)
        updated_at = data.get("updatedAt")
        record = AddressRecord(
            id=document.id,
            house_number=fields.house_number,
            street_name=fields.street_name,
            city=fields.city,
            state=fields.state,
            zip=fields.zip,
            ledger=ledger,
            coordinates=Coordinates.from_document(data.get("coordinates")),
            updated_at=int(updated_at) if isinstance(updated_at, (int, float)) else None,
        )
        return record, migrated

    def _persist_migrated_history(self, record: AddressRecord) -> None:
        try:
            self.store.update(
                self.collection,
                record.id,
                {"history": record.ledger.to_documents()},
            )
        except StoreError as exc:
            logger.warning(f"Failed to persist migrated history for address {record.id}: {exc}")

    def load(self, backfill: bool | None = None) -> LoadSummary:
        """Replace the in-memory collection with the store's contents.

        Each record is processed on its own: a failed history migration or
        coordinate backfill is logged and does not stop the others.
        """
        documents = self.store.list_all(self.collection)
        records: dict[str, AddressRecord] = {}
        migrated = 0
        for document in documents:
            record, was_migrated = self._record_from_document(document)
            if was_migrated:
                migrated += 1
                self._persist_migrated_history(record)
            records[record.id] = record

        self._records = records
        logger.info(f"Loaded {len(records)} addresses ({migrated} legacy records migrated)")

        backfilled = 0
        failed = 0
        should_backfill = settings.backfill_on_load if backfill is None else backfill
        if should_backfill:
            for record in list(records.values()):
                if record.coordinates is not None:
                    continue
                if self.backfill_coordinates(record):
                    backfilled += 1
                else:
                    failed += 1
            if backfilled or failed:
                logger.info(f"Coordinate backfill: {backfilled} updated, {failed} failed")

        self._notify("loaded")
        return LoadSummary(total=len(records), migrated=migrated, backfilled=backfilled, backfill_failed=failed)

    def suggest(self, field: str, text: str = "", limit: int | None = None) -> list[str]:
        """Distinct known values of an address field containing ``text`` (case-insensitive)."""
        attribute = SUGGESTION_FIELDS.get(field)
        if attribute is None:
            raise ValidationError(
                f"Suggestions are available for {', '.join(SUGGESTION_FIELDS)}, not '{field}'."
            )
        needle = text.strip().lower()
        values = {
            value
            for value in (getattr(record, attribute) for record in self._records.values())
            if value and needle in value.lower()
        }
        matches = sorted(values, key=str.lower)
        return matches[:limit] if limit else matches

    def visible(self, predicate: Callable[[Iterable[Any]], bool]) -> list[AddressRecord]:
        """Records whose current outcomes satisfy ``predicate`` (e.g. ``VisibilityFilter.is_visible``)."""
        return [record for record in self._records.values() if predicate(record.current_outcomes)]
