#!/usr/bin/env python3
"""
DocumentStore: collection and document operations over a Transport.

This is the single entry point application code uses. It namespaces every
collection name, wraps payloads under ``doc``, compiles filters to AQL and
drains result cursors before returning.
"""

import asyncio
import functools
import logging
from typing import Any, Dict, List, Optional

from .db.cursor import CursorDrainer, DEFAULT_MAX_BATCHES
from .db.filters import AQLFilterBackend, Filter, MongoFilterParser
from .db.indexes import Index
from .db.query_builder import BuiltQuery, OrderBy, QueryBuilder
from .db.transport import ArangoHttpTransport, Transport
from .exceptions import DocumentNotFoundError, ValidationError

DEFAULT_COLLECTION_PREFIX = 'em_ds_'


def with_timeout(method):
    """Allow a ``timeout`` keyword (seconds) bounding the whole operation."""
    @functools.wraps(method)
    async def wrapper(self, *args, timeout: Optional[float] = None, **kwargs):
        if timeout is None:
            return await method(self, *args, **kwargs)
        return await asyncio.wait_for(method(self, *args, **kwargs), timeout)
    return wrapper


class DocumentStore:
    """
    Schemaless document store backed by ArangoDB.

    Responsibilities:
    - Prefix and lower-case every collection name before it reaches the transport
    - Store payloads as ``{"_key": id, "doc": payload}``
    - Compile filters into parameterized AQL
    - Materialize paginated query results

    Operations share no state besides the transport, so concurrent calls are
    independent. ``upsert_doc`` is a read followed by a write and is not atomic.
    """

    def __init__(self,
                 transport: Transport,
                 collection_prefix: str = DEFAULT_COLLECTION_PREFIX,
                 max_batches: Optional[int] = DEFAULT_MAX_BATCHES,
                 max_documents: Optional[int] = None,
                 batch_size: Optional[int] = None):
        """
        Initialize the document store.

        Args:
            transport: Database collaborator
            collection_prefix: Namespace prepended to every collection name
            max_batches: Upper bound on cursor batches per query (None: unbounded)
            max_documents: Upper bound on documents per query (None: unbounded)
            batch_size: Requested cursor batch size (None: server default)
        """
        self.transport = transport
        self.collection_prefix = collection_prefix.lower()
        self.batch_size = batch_size
        self.filters = AQLFilterBackend()
        self.queries = QueryBuilder(self.filters)
        self.drainer = CursorDrainer(transport, max_batches=max_batches, max_documents=max_documents)
        self.parser = MongoFilterParser()
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'DocumentStore':
        """
        Build a store and its HTTP transport from a configuration dict.

        Example:
            from docstore import DocumentStore
            from docstore.config import Config

            store = DocumentStore.from_config(Config.from_env())
        """
        transport = ArangoHttpTransport(
            url=config.get("url", "http://localhost:8529"),
            database=config.get("database", "_system"),
            username=config.get("username", "root"),
            password=config.get("password", ""),
            request_timeout=config.get("request_timeout", 30.0),
        )
        return cls(
            transport,
            collection_prefix=config.get("collection_prefix", DEFAULT_COLLECTION_PREFIX),
            max_batches=config.get("max_batches", DEFAULT_MAX_BATCHES),
            max_documents=config.get("max_documents"),
            batch_size=config.get("batch_size"),
        )

    async def close(self):
        """Close the transport"""
        await self.transport.close()

    async def __aenter__(self) -> 'DocumentStore':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ============================================================================
    # Collections
    # ============================================================================

    def collection_name(self, name: str) -> str:
        """Transport-visible name of a collection."""
        if not name:
            raise ValidationError("Collection name must not be empty")
        if self.collection_prefix and self.collection_prefix in name.lower():
            raise ValidationError(
                f"Collection name {name!r} must not contain the prefix {self.collection_prefix!r}"
            )
        return (self.collection_prefix + name).lower()

    def _strip_prefix(self, name: str) -> str:
        return name.replace(self.collection_prefix, '')

    @with_timeout
    async def list_collections(self) -> List[str]:
        """List collections in this store's namespace, without the prefix."""
        names = await self._execute(self.queries.build_collection_search(self.collection_prefix))
        return [self._strip_prefix(name) for name in names]

    @with_timeout
    async def filter_collections_by_prefix(self, prefix: str) -> List[str]:
        """List collections whose external name contains ``prefix``."""
        fragment = self.collection_name(prefix) if prefix else self.collection_prefix
        names = await self._execute(self.queries.build_collection_search(fragment))
        return [self._strip_prefix(name) for name in names]

    @with_timeout
    async def has_collection(self, name: str) -> bool:
        names = await self._execute(self.queries.build_collection_lookup(self.collection_name(name)))
        return len(names) > 0

    @with_timeout
    async def add_collection(self, name: str, *indices: Index) -> None:
        """
        Create a collection and its indexes.

        Args:
            name: External collection name
            indices: Persistent indexes over payload fields
        """
        collection = self.collection_name(name)
        await self.transport.create_collection(collection)
        self.logger.info(f"Created collection {collection}")

        for index in indices:
            await self.transport.ensure_index(collection, index.to_payload(self.filters.payload_field))
            self.logger.debug(f"Created index on {collection}: {list(index.fields)}")

    @with_timeout
    async def drop_collection(self, name: str) -> None:
        """Drop a collection; CollectionNotFoundError if it does not exist."""
        collection = self.collection_name(name)
        await self.transport.drop_collection(collection)
        self.logger.info(f"Dropped collection {collection}")

    # ============================================================================
    # Single documents
    # ============================================================================

    @with_timeout
    async def add_doc(self, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        """Insert a document; DuplicateDocumentError if ``doc_id`` exists."""
        await self.transport.insert_document(
            self.collection_name(collection),
            self._wrap(doc_id, doc)
        )

    @with_timeout
    async def update_doc(self, collection: str, doc_id: str, doc_or_subset: Dict[str, Any]) -> None:
        """
        Replace the stored payload of ``doc_id``.

        The whole payload is replaced, it is not deep-merged.
        Raises DocumentNotFoundError if the document does not exist.
        """
        await self.transport.replace_document(
            self.collection_name(collection),
            self._check_id(doc_id),
            self._wrap(doc_id, doc_or_subset)
        )

    @with_timeout
    async def upsert_doc(self, collection: str, doc_id: str, doc_or_subset: Dict[str, Any]) -> None:
        """
        Add the document if it is missing, replace its payload otherwise.

        Not atomic: a concurrent insert of the same id between the read and
        the write surfaces as DuplicateDocumentError.
        """
        existing = await self.get_doc(collection, doc_id)

        if existing is None:
            await self.add_doc(collection, doc_id, doc_or_subset)
        else:
            await self.update_doc(collection, doc_id, doc_or_subset)

    @with_timeout
    async def delete_doc(self, collection: str, doc_id: str) -> None:
        """Delete a document; DocumentNotFoundError if it does not exist."""
        await self.transport.delete_document(self.collection_name(collection), self._check_id(doc_id))

    @with_timeout
    async def get_doc(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a document's payload.

        Returns:
            The payload, or None when the document does not exist
        """
        try:
            stored = await self.transport.get_document(self.collection_name(collection), self._check_id(doc_id))
        except DocumentNotFoundError:
            return None

        return stored.get(self.filters.payload_field)

    # ============================================================================
    # Filtered operations
    # ============================================================================

    @with_timeout
    async def filter_docs(self,
                          collection: str,
                          filter: Filter,
                          skip: Optional[int] = None,
                          limit: Optional[int] = None,
                          order_by: Optional[OrderBy] = None) -> List[Dict[str, Any]]:
        """
        Get the payloads of all documents matching ``filter``.

        Args:
            collection: External collection name
            filter: Filter tree, or a MongoDB-style filter dict
            skip: Number of matches to skip
            limit: Maximum number of matches
            order_by: Sort specification

        Returns:
            Fully materialized list of payloads
        """
        compiled = self.filters.compile(self._as_filter(filter))
        query = self.queries.build_select(
            self.collection_name(collection),
            compiled,
            skip=skip,
            limit=limit,
            order_by=order_by
        )
        return await self._execute(query)

    @with_timeout
    async def count_docs(self, collection: str, filter: Filter) -> int:
        """Count the documents matching ``filter``."""
        compiled = self.filters.compile(self._as_filter(filter))
        result = await self._execute(self.queries.build_count(self.collection_name(collection), compiled))
        return result[0] if result else 0

    @with_timeout
    async def update_many(self, collection: str, filter: Filter, new_doc: Dict[str, Any]) -> None:
        """Replace the payload of every document matching ``filter`` with ``new_doc``."""
        compiled = self.filters.compile(self._as_filter(filter))
        await self._execute_write(self.queries.build_update(self.collection_name(collection), compiled, new_doc))

    @with_timeout
    async def delete_many(self, collection: str, filter: Filter) -> None:
        """Delete every document matching ``filter``."""
        compiled = self.filters.compile(self._as_filter(filter))
        await self._execute_write(self.queries.build_remove(self.collection_name(collection), compiled))

    # ============================================================================
    # Helpers
    # ============================================================================

    async def _execute(self, query: BuiltQuery) -> List[Any]:
        """Run a query and drain its cursor; transport errors propagate."""
        batch = await self.transport.run_query(query.query, query.bind_vars, batch_size=self.batch_size)
        return await self.drainer.drain(batch)

    async def _execute_write(self, query: BuiltQuery) -> Dict[str, Any]:
        """Run a data-modification query and return its write statistics."""
        batch = await self.transport.run_query(query.query, query.bind_vars, batch_size=self.batch_size)
        await self.drainer.drain(batch)
        stats = batch.extra.get("stats", {})
        self.logger.debug(
            f"Write query executed {stats.get('writesExecuted', 0)} writes, "
            f"ignored {stats.get('writesIgnored', 0)}"
        )
        return stats

    def _as_filter(self, filter: Any) -> Filter:
        if isinstance(filter, dict):
            return self.parser.parse(filter)
        return filter

    @staticmethod
    def _check_id(doc_id: str) -> str:
        if not isinstance(doc_id, str) or not doc_id:
            raise ValidationError(f"Document id must be a non-empty string, got {doc_id!r}")
        return doc_id

    def _wrap(self, doc_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        return {"_key": self._check_id(doc_id), self.filters.payload_field: doc}
