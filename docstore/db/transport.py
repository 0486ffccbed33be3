#!/usr/bin/env python3
"""
Transport: HTTP access to ArangoDB's REST API.

The document store only talks to the database through the Transport
interface; ArangoHttpTransport implements it with aiohttp.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from ..exceptions import (
    CollectionNotFoundError,
    DocumentNotFoundError,
    DuplicateDocumentError,
    ServerError,
    TransportError,
)

# ArangoDB errorNum values mapped to dedicated exceptions
ERROR_DOCUMENT_NOT_FOUND = 1202
ERROR_COLLECTION_NOT_FOUND = 1203
ERROR_UNIQUE_CONSTRAINT_VIOLATED = 1210


@dataclass
class CursorBatch:
    """One page of a server-side query cursor."""
    documents: List[Any] = field(default_factory=list)
    has_more: bool = False
    cursor_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> 'CursorBatch':
        """Build a batch from an /_api/cursor response body."""
        cursor_id = body.get("id")
        return cls(
            documents=list(body.get("result") or []),
            has_more=bool(body.get("hasMore", False)),
            cursor_id=str(cursor_id) if cursor_id is not None else None,
            extra=body.get("extra") or {},
        )


class Transport(ABC):
    """
    Abstract database collaborator used by the document store.
    Implementations raise TransportError (or one of the StorageError
    subclasses) for every failed call; they never return error bodies.
    """

    @abstractmethod
    async def create_collection(self, name: str) -> None:
        pass

    @abstractmethod
    async def drop_collection(self, name: str) -> None:
        pass

    @abstractmethod
    async def run_query(self,
                        query: str,
                        bind_vars: Dict[str, Any],
                        batch_size: Optional[int] = None) -> CursorBatch:
        pass

    @abstractmethod
    async def fetch_next_batch(self, cursor_id: str) -> CursorBatch:
        pass

    @abstractmethod
    async def delete_cursor(self, cursor_id: str) -> None:
        pass

    @abstractmethod
    async def get_document(self, collection: str, key: str) -> Dict[str, Any]:
        """Return the stored document; raise DocumentNotFoundError when absent."""
        pass

    @abstractmethod
    async def insert_document(self, collection: str, document: Dict[str, Any]) -> None:
        """Insert a new document; raise DuplicateDocumentError on key conflicts."""
        pass

    @abstractmethod
    async def replace_document(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_document(self, collection: str, key: str) -> None:
        pass

    @abstractmethod
    async def ensure_index(self, collection: str, index: Dict[str, Any]) -> None:
        pass

    async def close(self) -> None:
        """Release any held connections."""
        pass


class ArangoHttpTransport(Transport):
    """
    Transport over ArangoDB's HTTP API using an aiohttp session.
    The session is created lazily and reused across calls.
    """

    def __init__(self,
                 url: str = "http://localhost:8529",
                 database: str = "_system",
                 username: Optional[str] = "root",
                 password: str = "",
                 request_timeout: Optional[float] = 30.0,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the transport.

        Args:
            url: Server URL (scheme, host and port)
            database: Database name
            username: Basic auth user; None disables authentication
            password: Basic auth password
            request_timeout: Total timeout per HTTP request in seconds
            session: Externally managed aiohttp session (not closed by us)
        """
        self.base_url = f"{url.rstrip('/')}/_db/{quote(database, safe='')}"
        self.auth = aiohttp.BasicAuth(username, password) if username else None
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)
        self.session = session
        self._owns_session = session is None
        self.logger = logging.getLogger(__name__)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Make an HTTP request and return the decoded JSON body."""
        session = await self._ensure_session()
        url = f"{self.base_url}{endpoint}"

        try:
            async with session.request(
                method, url, auth=self.auth, timeout=self.timeout, **kwargs
            ) as response:
                body = await self._read_body(response)
                if response.status >= 400 or body.get("error") is True:
                    raise self._error_from_response(method, endpoint, response.status, body)
                return body
        except ServerError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} {endpoint} timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {endpoint} failed: {e}") from e

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Dict[str, Any]:
        text = await response.text()
        if not text:
            return {}
        try:
            body = await response.json(content_type=None)
        except ValueError as e:
            raise TransportError(
                f"Malformed response body: {text[:200]}", status=response.status
            ) from e
        if not isinstance(body, dict):
            raise TransportError(f"Unexpected response body: {text[:200]}", status=response.status)
        return body

    @staticmethod
    def _error_from_response(method: str, endpoint: str, status: int, body: Dict[str, Any]) -> ServerError:
        """Map an ArangoDB error response to an exception."""
        error_num = body.get("errorNum")
        message = body.get("errorMessage") or f"{method} {endpoint} returned HTTP {status}"

        if error_num == ERROR_DOCUMENT_NOT_FOUND:
            return DocumentNotFoundError(message, status=status, error_num=error_num)
        if error_num == ERROR_COLLECTION_NOT_FOUND:
            return CollectionNotFoundError(message, status=status, error_num=error_num)
        if error_num == ERROR_UNIQUE_CONSTRAINT_VIOLATED:
            return DuplicateDocumentError(message, status=status, error_num=error_num)
        return TransportError(message, status=status, error_num=error_num)

    @staticmethod
    def _path(*parts: str) -> str:
        return "".join(f"/{quote(str(p), safe='')}" for p in parts)

    # ==============================================================================
    # Collections
    # ==============================================================================

    async def create_collection(self, name: str) -> None:
        await self._request("POST", "/_api/collection", json={"name": name})

    async def drop_collection(self, name: str) -> None:
        await self._request("DELETE", "/_api/collection" + self._path(name))

    async def ensure_index(self, collection: str, index: Dict[str, Any]) -> None:
        await self._request("POST", "/_api/index", params={"collection": collection}, json=index)

    # ==============================================================================
    # Cursors
    # ==============================================================================

    async def run_query(self,
                        query: str,
                        bind_vars: Dict[str, Any],
                        batch_size: Optional[int] = None) -> CursorBatch:
        payload: Dict[str, Any] = {"query": query, "bindVars": bind_vars}
        if batch_size:
            payload["batchSize"] = batch_size

        self.logger.debug(f"Running AQL with bind vars {sorted(bind_vars)}: {query}")
        body = await self._request("POST", "/_api/cursor", json=payload)
        return CursorBatch.from_response(body)

    async def fetch_next_batch(self, cursor_id: str) -> CursorBatch:
        body = await self._request("PUT", "/_api/cursor" + self._path(cursor_id))
        return CursorBatch.from_response(body)

    async def delete_cursor(self, cursor_id: str) -> None:
        await self._request("DELETE", "/_api/cursor" + self._path(cursor_id))

    # ==============================================================================
    # Documents
    # ==============================================================================

    async def get_document(self, collection: str, key: str) -> Dict[str, Any]:
        return await self._request("GET", "/_api/document" + self._path(collection, key))

    async def insert_document(self, collection: str, document: Dict[str, Any]) -> None:
        await self._request("POST", "/_api/document" + self._path(collection), json=document)

    async def replace_document(self, collection: str, key: str, document: Dict[str, Any]) -> None:
        await self._request("PUT", "/_api/document" + self._path(collection, key), json=document)

    async def delete_document(self, collection: str, key: str) -> None:
        await self._request("DELETE", "/_api/document" + self._path(collection, key))

    async def close(self) -> None:
        """Close the HTTP session"""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
