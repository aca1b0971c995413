"""Document store used to persist address records.

Rows are addressed by a store-assigned ``id``; every other column is a
persisted field name (``houseNumber``, ``history``, ...).
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredDocument:
    id: str
    data: dict[str, Any]


class DocumentStore(Protocol):
    def create(self, collection: str, data: dict[str, Any]) -> str: ...

    def update(self, collection: str, document_id: str, partial: dict[str, Any]) -> None: ...

    def delete(self, collection: str, document_id: str) -> None: ...

    def list_all(self, collection: str) -> list[StoredDocument]: ...


class SupabaseDocumentStore:
    """Stores documents as rows of a Supabase table named after the collection."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def create(self, collection: str, data: dict[str, Any]) -> str:
        try:
            response = self.client.table(collection).insert(data).execute()
        except Exception as exc:
            raise StoreError(f"Failed to insert into '{collection}': {exc}") from exc
        rows = response.data or []
        if not rows or rows[0].get("id") is None:
            raise StoreError(f"Insert into '{collection}' returned no id.")
        return str(rows[0]["id"])

    def update(self, collection: str, document_id: str, partial: dict[str, Any]) -> None:
        try:
            self.client.table(collection).update(partial).eq("id", document_id).execute()
        except Exception as exc:
            raise StoreError(f"Failed to update '{collection}/{document_id}': {exc}") from exc

    def delete(self, collection: str, document_id: str) -> None:
        try:
            self.client.table(collection).delete().eq("id", document_id).execute()
        except Exception as exc:
            raise StoreError(f"Failed to delete '{collection}/{document_id}': {exc}") from exc

    def list_all(self, collection: str) -> list[StoredDocument]:
        try:
            response = self.client.table(collection).select("*").execute()
        except Exception as exc:
            raise StoreError(f"Failed to read '{collection}': {exc}") from exc
        documents: list[StoredDocument] = []
        for row in response.data or []:
            row = dict(row)
            document_id = row.pop("id", None)
            if document_id is None:
                logger.warning(f"Skipping row without id in '{collection}'")
                continue
            documents.append(StoredDocument(id=str(document_id), data=row))
        return documents


class InMemoryDocumentStore:
    """Process-local store with the same contract, used when Supabase is not configured."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def create(self, collection: str, data: dict[str, Any]) -> str:
        document_id = uuid.uuid4().hex
        self._collection(collection)[document_id] = copy.deepcopy(data)
        return document_id

    def update(self, collection: str, document_id: str, partial: dict[str, Any]) -> None:
        documents = self._collection(collection)
        if document_id not in documents:
            raise StoreError(f"Document '{collection}/{document_id}' does not exist.")
        documents[document_id].update(copy.deepcopy(partial))

    def delete(self, collection: str, document_id: str) -> None:
        self._collection(collection).pop(document_id, None)

    def list_all(self, collection: str) -> list[StoredDocument]:
        return [
            StoredDocument(id=document_id, data=copy.deepcopy(data))
            for document_id, data in self._collection(collection).items()
        ]


def get_document_store() -> DocumentStore:
    """Supabase when configured, otherwise an in-memory store."""
    from ..db.supabase import get_supabase_client

    client = get_supabase_client()
    if client is None:
        logger.warning("Supabase not configured - address records are kept in memory only")
        return InMemoryDocumentStore()
    return SupabaseDocumentStore(client)
