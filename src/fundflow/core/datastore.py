#!/usr/bin/env python3
"""
DocumentStore Protocol - Standard interface for document persistence.

The hosted document database is an external collaborator. This module pins
the small surface the rest of the package relies on (get, query by field,
create, update, delete) and provides two implementations: an in-memory store
for tests and sessions without persistence, and a JSON-file store used by the
CLI.

Last write wins. There are no concurrency tokens or conflict detection.
"""

import asyncio
import copy
import logging
import uuid
from pathlib import Path
from typing import Any, Protocol

from .json_utils import read_json, write_json

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class StoreError(Exception):
    """Raised when the document store cannot complete an operation."""

    pass


class DocumentNotFoundError(StoreError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class DocumentStore(Protocol):
    """
    Protocol for the persistent document store.

    Documents are JSON-like dicts. Every returned document carries its "id".
    Callers receive copies; mutating a returned document never changes the
    stored one.
    """

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document, or None if it does not exist."""
        ...

    async def query(self, collection: str, field: str, value: Any) -> list[Document]:
        """
        Fetch documents whose field equals value.

        For list-valued fields the match is containment, so querying funds
        by "members" finds every fund a user belongs to.
        """
        ...

    async def all(self, collection: str) -> list[Document]:
        """Fetch every document in a collection."""
        ...

    async def create(self, collection: str, document: Document) -> str:
        """Store a new document and return its id (generated if absent)."""
        ...

    async def update(self, collection: str, doc_id: str, changes: Document) -> None:
        """
        Merge changes into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document. Deleting a missing document is a no-op."""
        ...


def field_matches(document: Document, field: str, value: Any) -> bool:
    """Equality match, or containment when the stored field is a list."""
    stored = document.get(field)
    if isinstance(stored, list):
        return value in stored
    return stored == value


def new_document_id() -> str:
    """Generate an opaque document id."""
    return uuid.uuid4().hex[:20]


class InMemoryDocumentStore:
    """DocumentStore held in process memory."""

    def __init__(self, initial: dict[str, list[Document]] | None = None):
        self._collections: dict[str, dict[str, Document]] = {}
        for collection, documents in (initial or {}).items():
            for document in documents:
                doc_id = str(document.get("id") or new_document_id())
                self._collections.setdefault(collection, {})[doc_id] = {**copy.deepcopy(document), "id": doc_id}

    def _collection(self, collection: str) -> dict[str, Document]:
        return self._collections.setdefault(collection, {})

    async def get(self, collection: str, doc_id: str) -> Document | None:
        document = self._collection(collection).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(self, collection: str, field: str, value: Any) -> list[Document]:
        return [
            copy.deepcopy(document)
            for document in self._collection(collection).values()
            if field_matches(document, field, value)
        ]

    async def all(self, collection: str) -> list[Document]:
        return [copy.deepcopy(document) for document in self._collection(collection).values()]

    async def create(self, collection: str, document: Document) -> str:
        doc_id = str(document.get("id") or new_document_id())
        self._collection(collection)[doc_id] = {**copy.deepcopy(document), "id": doc_id}
        return doc_id

    async def update(self, collection: str, doc_id: str, changes: Document) -> None:
        documents = self._collection(collection)
        if doc_id not in documents:
            raise DocumentNotFoundError(collection, doc_id)
        documents[doc_id].update(copy.deepcopy(changes))
        documents[doc_id]["id"] = doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)


class JsonFileDocumentStore:
    """
    DocumentStore persisted as one JSON file per collection.

    Layout: <root>/<collection>.json holding an object of id -> document.
    File access runs in a worker thread; a per-store lock serializes
    read-modify-write cycles within the process.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = asyncio.Lock()

    def _path(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def _load(self, collection: str) -> dict[str, Document]:
        try:
            data = read_json(self._path(collection), default={})
        except (OSError, ValueError) as e:
            raise StoreError(f"Failed to read collection '{collection}': {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Collection file {self._path(collection)} is not a JSON object")
        return data

    def _save(self, collection: str, documents: dict[str, Document]) -> None:
        try:
            write_json(self._path(collection), documents)
        except OSError as e:
            raise StoreError(f"Failed to write collection '{collection}': {e}") from e

    async def get(self, collection: str, doc_id: str) -> Document | None:
        documents = await asyncio.to_thread(self._load, collection)
        return documents.get(doc_id)

    async def query(self, collection: str, field: str, value: Any) -> list[Document]:
        documents = await asyncio.to_thread(self._load, collection)
        return [document for document in documents.values() if field_matches(document, field, value)]

    async def all(self, collection: str) -> list[Document]:
        documents = await asyncio.to_thread(self._load, collection)
        return list(documents.values())

    async def create(self, collection: str, document: Document) -> str:
        async with self._lock:
            documents = await asyncio.to_thread(self._load, collection)
            doc_id = str(document.get("id") or new_document_id())
            documents[doc_id] = {**document, "id": doc_id}
            await asyncio.to_thread(self._save, collection, documents)
        logger.debug("Created %s/%s", collection, doc_id)
        return doc_id

    async def update(self, collection: str, doc_id: str, changes: Document) -> None:
        async with self._lock:
            documents = await asyncio.to_thread(self._load, collection)
            if doc_id not in documents:
                raise DocumentNotFoundError(collection, doc_id)
            documents[doc_id].update(changes)
            documents[doc_id]["id"] = doc_id
            await asyncio.to_thread(self._save, collection, documents)
        logger.debug("Updated %s/%s", collection, doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._lock:
            documents = await asyncio.to_thread(self._load, collection)
            if documents.pop(doc_id, None) is not None:
                await asyncio.to_thread(self._save, collection, documents)
                logger.debug("Deleted %s/%s", collection, doc_id)
