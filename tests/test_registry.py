import httpx
import pytest

from visitmap.errors import GeocodeError, NotFoundError, StoreError, ValidationError
from visitmap.models.domain import AddressFields, Coordinates, VisitEntry
from visitmap.persistence.store import InMemoryDocumentStore
from visitmap.services.classifier import classify
from visitmap.services.geocoding import NominatimGeocoder
from visitmap.services.registry import AddressRegistry

COLLECTION = "addresses"


def _fields(house_number: str = "5590", street: str = "Bruce Ave") -> AddressFields:
    return AddressFields(
        house_number=house_number,
        street_name=street,
        city="Louisville",
        state="KY",
        zip="40214",
    )


def _entry(results, visited_by="Ann", timestamp=1_700_000_000_000) -> VisitEntry:
    return VisitEntry.create(results, visited_by, timestamp=timestamp)


class DummyGeocoder:
    def __init__(self, result=Coordinates(lat=38.144212, lon=-85.777914), error=None):
        self.result = result
        self.error = error
        self.queries: list[str] = []

    def forward(self, address_text):
        self.queries.append(address_text)
        if self.error:
            raise self.error
        return self.result

    def reverse(self, lat, lon):
        return None


class RecordingStore(InMemoryDocumentStore):
    def __init__(self, fail_on: set[str] | None = None):
        super().__init__()
        self.fail_on = fail_on or set()
        self.calls: list[tuple] = []

    def create(self, collection, data):
        self.calls.append(("create", collection))
        if "create" in self.fail_on:
            raise StoreError("create failed")
        return super().create(collection, data)

    def update(self, collection, document_id, partial):
        self.calls.append(("update", document_id, tuple(sorted(partial))))
        if "update" in self.fail_on:
            raise StoreError("update failed")
        super().update(collection, document_id, partial)

    def delete(self, collection, document_id):
        self.calls.append(("delete", document_id))
        if "delete" in self.fail_on:
            raise StoreError("delete failed")
        super().delete(collection, document_id)

    def document(self, document_id):
        return {doc.id: doc.data for doc in self.list_all(COLLECTION)}[document_id]


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def geocoder():
    return DummyGeocoder()


@pytest.fixture
def registry(store, geocoder):
    return AddressRegistry(store=store, geocoder=geocoder, collection=COLLECTION)


def test_add_geocodes_formatted_address_and_persists(registry, store, geocoder):
    record = registry.add(_fields(), _entry(["Shared Gospel"]))

    assert geocoder.queries == ["5590 Bruce Ave, Louisville, KY 40214"]
    assert record.id
    assert registry.find_by_id(record.id) is record
    assert record.coordinates == Coordinates(lat=38.144212, lon=-85.777914)
    assert classify(record.current_outcomes).value == "green"

    document = store.document(record.id)
    assert document["houseNumber"] == "5590"
    assert document["coordinates"] == {"lat": 38.144212, "lon": -85.777914}
    assert document["results"] == ["Shared Gospel"]
    assert document["visitedBy"] == "Ann"
    assert len(document["history"]) == 1
    assert isinstance(document["updatedAt"], int)


def test_add_uses_supplied_coordinates(registry, geocoder):
    record = registry.add(_fields(), _entry(["Busy"]), coordinates=Coordinates(lat=1.0, lon=2.0))
    assert geocoder.queries == []
    assert record.coordinates == Coordinates(lat=1.0, lon=2.0)


def test_add_not_found_never_touches_store(store):
    registry = AddressRegistry(store=store, geocoder=DummyGeocoder(result=None), collection=COLLECTION)
    with pytest.raises(GeocodeError):
        registry.add(_fields(), _entry(["Busy"]))
    assert ("create", COLLECTION) not in store.calls
    assert len(registry) == 0


@pytest.mark.parametrize("blank", ["house_number", "street_name", "city", "state", "zip"])
def test_add_requires_every_address_part(registry, store, blank):
    values = {
        "house_number": "1",
        "street_name": "Main St",
        "city": "Town",
        "state": "KY",
        "zip": "40000",
    }
    values[blank] = "  "
    with pytest.raises(ValidationError):
        registry.add(AddressFields(**values), _entry(["Busy"]))
    assert store.calls == []


def test_add_rejects_invalid_first_entry(registry, store, geocoder):
    with pytest.raises(ValidationError):
        registry.add(_fields(), _entry([]))
    with pytest.raises(ValidationError):
        registry.add(_fields(), _entry(["Busy"], visited_by=""))
    assert store.calls == []
    assert geocoder.queries == []


def test_add_store_failure_leaves_registry_empty(geocoder):
    registry = AddressRegistry(store=RecordingStore(fail_on={"create"}), geocoder=geocoder, collection=COLLECTION)
    with pytest.raises(StoreError):
        registry.add(_fields(), _entry(["Busy"]))
    assert registry.list_all() == []


def test_history_scenario(registry, store):
    record = registry.add(_fields(), _entry(["Shared Gospel"]))
    original = record.history[0]

    current = registry.add_history_entry(record.id, _entry(["Requested No Contact"], visited_by="Bob"))

    assert set(current.outcomes) == {"Requested No Contact"}
    assert classify(record.current_outcomes).value == "red"
    assert record.current_visited_by == "Bob"
    assert record.history[0] == original
    assert len(record.history) == 2

    document = store.document(record.id)
    assert document["results"] == ["Requested No Contact"]
    assert document["visitedBy"] == "Bob"
    assert [entry["results"] for entry in document["history"]] == [["Shared Gospel"], ["Requested No Contact"]]
    assert document["houseNumber"] == "5590"


def test_add_history_entry_unknown_id(registry):
    with pytest.raises(NotFoundError):
        registry.add_history_entry("missing", _entry(["Busy"]))


def test_add_history_entry_validation_propagates(registry, store):
    record = registry.add(_fields(), _entry(["Busy"]))
    store.calls.clear()
    with pytest.raises(ValidationError):
        registry.add_history_entry(record.id, _entry([]))
    assert store.calls == []
    assert len(record.history) == 1


def test_add_history_entry_store_failure_keeps_memory(registry, store):
    record = registry.add(_fields(), _entry(["Busy"]))
    store.fail_on.add("update")
    with pytest.raises(StoreError):
        registry.add_history_entry(record.id, _entry(["Believer"]))
    assert len(record.history) == 1
    assert record.current_outcomes == ("Busy",)


def test_remove(registry, store):
    record = registry.add(_fields(), _entry(["Busy"]))
    registry.remove(record.id)
    assert registry.find_by_id(record.id) is None
    assert store.list_all(COLLECTION) == []


def test_remove_unknown_id(registry, store):
    with pytest.raises(NotFoundError):
        registry.remove("missing")
    assert store.calls == []


def test_remove_store_failure_keeps_record(registry, store):
    record = registry.add(_fields(), _entry(["Busy"]))
    store.fail_on.add("delete")
    with pytest.raises(StoreError):
        registry.remove(record.id)
    assert registry.find_by_id(record.id) is record


def test_backfill_coordinates_is_idempotent(store, geocoder):
    store.create(COLLECTION, {**_fields().to_document(), "coordinates": None, "history": []})
    registry = AddressRegistry(store=store, geocoder=geocoder, collection=COLLECTION)
    registry.load(backfill=False)
    record = registry.list_all()[0]
    assert record.coordinates is None

    assert registry.backfill_coordinates(record) is True
    assert registry.backfill_coordinates(record) is False
    assert len(geocoder.queries) == 1
    assert store.document(record.id)["coordinates"] == {"lat": 38.144212, "lon": -85.777914}


def test_backfill_failure_is_not_fatal(store):
    store.create(COLLECTION, {**_fields().to_document(), "coordinates": None})
    registry = AddressRegistry(
        store=store,
        geocoder=DummyGeocoder(error=GeocodeError("geocoder down")),
        collection=COLLECTION,
    )
    registry.load(backfill=False)
    record = registry.list_all()[0]
    assert registry.backfill_coordinates(record) is False
    assert record.coordinates is None


def test_load_isolates_backfill_failures(store):
    store.create(COLLECTION, {**_fields("1").to_document(), "coordinates": None, "results": ["Busy"]})
    store.create(COLLECTION, {**_fields("2").to_document(), "coordinates": None, "results": ["Busy"]})
    store.create(COLLECTION, {**_fields("3").to_document(), "coordinates": {"lat": 1, "lon": 2}, "results": []})

    class FlakyGeocoder(DummyGeocoder):
        def forward(self, address_text):
            self.queries.append(address_text)
            if address_text.startswith("1 "):
                raise GeocodeError("timeout")
            return self.result

    geocoder = FlakyGeocoder()
    registry = AddressRegistry(store=store, geocoder=geocoder, collection=COLLECTION)
    summary = registry.load(backfill=True)

    assert summary.total == 3
    assert summary.backfilled == 1
    assert summary.backfill_failed == 1
    assert len(geocoder.queries) == 2
    by_house = {record.house_number: record for record in registry.list_all()}
    assert by_house["1"].coordinates is None
    assert by_house["2"].coordinates is not None


def test_load_isolates_unexpected_geocoder_errors(store):
    store.create(COLLECTION, {**_fields("1").to_document(), "coordinates": None})
    store.create(COLLECTION, {**_fields("2").to_document(), "coordinates": None})

    class BrokenGeocoder(DummyGeocoder):
        def forward(self, address_text):
            self.queries.append(address_text)
            if address_text.startswith("1 "):
                raise RuntimeError("unexpected payload")
            return self.result

    geocoder = BrokenGeocoder()
    registry = AddressRegistry(store=store, geocoder=geocoder, collection=COLLECTION)
    summary = registry.load(backfill=True)

    assert summary.backfilled == 1
    assert summary.backfill_failed == 1
    assert len(geocoder.queries) == 2


def test_load_survives_dropped_geocoder_connections(store):
    store.create(COLLECTION, {**_fields("1").to_document(), "coordinates": None})
    store.create(COLLECTION, {**_fields("2").to_document(), "coordinates": None})

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.RemoteProtocolError("Server disconnected without sending a response.", request=request)

    geocoder = NominatimGeocoder(
        base_url="https://geo.test",
        user_agent="visit-map-tests",
        max_retries=0,
        backoff_seconds=0.0,
        min_interval_seconds=0.0,
        transport=httpx.MockTransport(handler),
    )
    registry = AddressRegistry(store=store, geocoder=geocoder, collection=COLLECTION)
    summary = registry.load(backfill=True)

    assert summary.total == 2
    assert summary.backfill_failed == 2
    assert all(record.coordinates is None for record in registry.list_all())


def test_load_migrates_legacy_records_once(store, geocoder):
    document_id = store.create(
        COLLECTION,
        {
            **_fields().to_document(),
            "coordinates": {"lat": 1.0, "lon": 2.0},
            "results": ["No Answer"],
            "comments": "dog in yard",
            "updatedAt": 1000,
        },
    )
    registry = AddressRegistry(store=store, geocoder=geocoder, collection=COLLECTION)

    first = registry.load()
    assert first.migrated == 1
    history = store.document(document_id)["history"]
    assert len(history) == 1
    assert history[0]["comment"] == "dog in yard"
    assert history[0]["timestamp"] == 1000

    second = registry.load()
    assert second.migrated == 0
    assert len(store.document(document_id)["history"]) == 1
    assert len(registry.find_by_id(document_id).history) == 1


def test_load_replaces_memory_and_surfaces_store_errors(registry, store):
    registry.add(_fields(), _entry(["Busy"]))

    class BrokenStore(InMemoryDocumentStore):
        def list_all(self, collection):
            raise StoreError("offline")

    broken = AddressRegistry(store=BrokenStore(), geocoder=DummyGeocoder(), collection=COLLECTION)
    with pytest.raises(StoreError):
        broken.load()

    fresh = AddressRegistry(store=store, geocoder=DummyGeocoder(), collection=COLLECTION)
    assert fresh.load().total == 1


def test_listeners_see_committed_changes(registry):
    events = []
    unsubscribe = registry.subscribe(events.append)

    record = registry.add(_fields(), _entry(["Busy"]))
    registry.add_history_entry(record.id, _entry(["Believer"]))
    registry.remove(record.id)
    unsubscribe()
    registry.add(_fields("7"), _entry(["Busy"]))

    assert [(event.kind, event.record_id) for event in events] == [
        ("added", record.id),
        ("updated", record.id),
        ("removed", record.id),
    ]


def test_suggestions(registry):
    registry.add(_fields("1", "Bruce Ave"), _entry(["Busy"]))
    registry.add(_fields("2", "Bruce Ave"), _entry(["Busy"]))
    registry.add(_fields("3", "Beech St"), _entry(["Busy"]))

    assert registry.suggest("streetName", "b") == ["Beech St", "Bruce Ave"]
    assert registry.suggest("streetName", "RUCE") == ["Bruce Ave"]
    assert registry.suggest("city") == ["Louisville"]
    with pytest.raises(ValidationError):
        registry.suggest("houseNumber", "1")


def test_visible_uses_predicate(registry):
    from visitmap.services.visibility import VisibilityFilter

    green = registry.add(_fields("1"), _entry(["Shared Gospel"]))
    red = registry.add(_fields("2"), _entry(["Requested No Contact"]))
    visibility = VisibilityFilter()
    visibility.toggle("red")

    visible_ids = {record.id for record in registry.visible(visibility.is_visible)}
    assert visible_ids == {green.id}
    assert red.id not in visible_ids
