"""
Shared pytest fixtures for document store tests.
Provides an in-memory transport so the store can be exercised without a server.
"""

import asyncio
import copy
import itertools
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docstore import DocumentStore
from docstore.db.transport import CursorBatch, Transport
from docstore.exceptions import (
    CollectionNotFoundError,
    DocumentNotFoundError,
    DuplicateDocumentError,
    TransportError,
)

logging.basicConfig(level=logging.CRITICAL)


class FakeTransport(Transport):
    """
    In-memory stand-in for ArangoDB.

    Documents and collections behave like the real server. AQL is not
    interpreted: collection enumeration queries are answered from the
    in-memory collections, every other query returns the next scripted
    response (or an empty result).
    """

    def __init__(self, page_size: int = 1000):
        self.page_size = page_size
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.indexes: List[tuple] = []
        self.queries: List[tuple] = []
        self.fetched: List[str] = []
        self.deleted_cursors: List[str] = []
        self.responses: List[tuple] = []
        self.cursors: Dict[str, List[CursorBatch]] = {}
        self.fail_next: Optional[Exception] = None
        self.delay = 0.0
        self.closed = False
        self._ids = itertools.count(1)

    def script(self, *batches: List[Any], extra: Optional[Dict[str, Any]] = None):
        """Queue the batches returned by the next non-enumeration query."""
        self.responses.append((list(batches), extra or {}))

    def _paginate(self, batches: List[List[Any]], extra: Dict[str, Any]) -> CursorBatch:
        if not batches:
            return CursorBatch([], False, None, extra)
        cursor_id = str(next(self._ids))
        pages = [
            CursorBatch(list(docs), i < len(batches) - 1, cursor_id if i < len(batches) - 1 else None, extra)
            for i, docs in enumerate(batches)
        ]
        if len(pages) > 1:
            self.cursors[cursor_id] = pages[1:]
        return pages[0]

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        if name not in self.collections:
            raise CollectionNotFoundError(
                "collection or view not found", status=404, error_num=1203
            )
        return self.collections[name]

    async def create_collection(self, name: str) -> None:
        if name in self.collections:
            raise TransportError("duplicate name", status=409, error_num=1207)
        self.collections[name] = {}

    async def drop_collection(self, name: str) -> None:
        self._collection(name)
        del self.collections[name]

    async def ensure_index(self, collection: str, index: Dict[str, Any]) -> None:
        self._collection(collection)
        self.indexes.append((collection, index))

    async def run_query(self, query: str, bind_vars: Dict[str, Any], batch_size: Optional[int] = None) -> CursorBatch:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.queries.append((query, copy.deepcopy(bind_vars)))
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

        if "COLLECTIONS()" in query:
            if "prefix" in bind_vars:
                names = [n for n in self.collections if bind_vars["prefix"] in n]
            else:
                names = [n for n in self.collections if n == bind_vars["collectionName"]]
            pages = [names[i:i + self.page_size] for i in range(0, len(names), self.page_size)]
            return self._paginate(pages, {})

        if self.responses:
            batches, extra = self.responses.pop(0)
            return self._paginate(batches, extra)
        return CursorBatch([], False, None)

    async def fetch_next_batch(self, cursor_id: str) -> CursorBatch:
        self.fetched.append(cursor_id)
        pages = self.cursors.get(cursor_id)
        if not pages:
            raise TransportError("cursor not found", status=404, error_num=1600)
        return pages.pop(0)

    async def delete_cursor(self, cursor_id: str) -> None:
        self.deleted_cursors.append(cursor_id)
        self.cursors.pop(cursor_id, None)

    async def get_document(self, collection: str, key: str) -> Dict[str, Any]:
        docs = self._collection(collection)
        if key not in docs:
            raise DocumentNotFoundError("document not found", status=404, error_num=1202)
        return copy.deepcopy(docs[key])

    async def insert_document(self, collection: str, document: Dict[str, Any]) -> None:
        docs = self._collection(collection)
        key = document["_key"]
        if key in docs:
            raise DuplicateDocumentError(
                "unique constraint violated", status=409, error_num=1210
            )
        docs[key] = dict(copy.deepcopy(document), _id=f"{collection}/{key}")

    async def replace_document(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        docs = self._collection(collection)
        if key not in docs:
            raise DocumentNotFoundError("document not found", status=404, error_num=1202)
        docs[key] = dict(copy.deepcopy(document), _id=f"{collection}/{key}")

    async def delete_document(self, collection: str, key: str) -> None:
        docs = self._collection(collection)
        if key not in docs:
            raise DocumentNotFoundError("document not found", status=404, error_num=1202)
        del docs[key]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport():
    """Provide an empty in-memory transport."""
    return FakeTransport()


@pytest_asyncio.fixture
async def store(transport):
    """Provide a DocumentStore over the in-memory transport."""
    async with DocumentStore(transport) as document_store:
        yield document_store


@pytest_asyncio.fixture
async def users(store):
    """Provide a store with an empty 'users' collection."""
    await store.add_collection("users")
    return store
