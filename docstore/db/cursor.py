#!/usr/bin/env python3
"""
CursorDrainer: exhausts a server-side query cursor into one list.
"""

import logging
from typing import Any, List, Optional

from .transport import CursorBatch, Transport
from ..exceptions import DocumentStoreError, PaginationLimitError, TransportError

DEFAULT_MAX_BATCHES = 10000


class CursorDrainer:
    """
    Follows a cursor's continuation batches until the server reports no more.

    Fetches are strictly sequential since every continuation depends on the
    previous response. The walk is bounded by ``max_batches`` and
    ``max_documents`` (None disables a bound). The bounds are checked before
    each fetch; once one is reached the live cursor is released on the server
    and PaginationLimitError is raised.
    """

    def __init__(self,
                 transport: Transport,
                 max_batches: Optional[int] = DEFAULT_MAX_BATCHES,
                 max_documents: Optional[int] = None):
        self.transport = transport
        self.max_batches = max_batches
        self.max_documents = max_documents
        self.logger = logging.getLogger(__name__)

    async def drain(self, batch: CursorBatch) -> List[Any]:
        """
        Collect the documents of ``batch`` and every batch after it.

        Args:
            batch: First batch, as returned by Transport.run_query

        Returns:
            All documents in arrival order
        """
        documents: List[Any] = []
        batches = 0

        while True:
            batches += 1
            documents.extend(batch.documents)

            if not batch.has_more:
                if self._over_documents(len(documents)):
                    raise self._limit_error(batches, len(documents))
                return documents

            if batch.cursor_id is None:
                raise TransportError("Cursor reported more results but returned no cursor id")

            # Stop before fetching a batch the bounds would reject
            if self._over_documents(len(documents)) or self._at_batch_limit(batches):
                await self.release(batch)
                raise self._limit_error(batches, len(documents))

            batch = await self.transport.fetch_next_batch(batch.cursor_id)

    def _at_batch_limit(self, batches: int) -> bool:
        return self.max_batches is not None and batches >= self.max_batches

    def _over_documents(self, documents: int) -> bool:
        return self.max_documents is not None and documents > self.max_documents

    def _limit_error(self, batches: int, documents: int) -> PaginationLimitError:
        return PaginationLimitError(
            f"Cursor exceeded limits after {batches} batches and {documents} documents "
            f"(max_batches={self.max_batches}, max_documents={self.max_documents})",
            batches=batches,
            documents=documents
        )

    async def release(self, batch: CursorBatch) -> None:
        """Delete an unfinished cursor on the server; failures are only logged."""
        if not batch.has_more or batch.cursor_id is None:
            return
        try:
            await self.transport.delete_cursor(batch.cursor_id)
        except DocumentStoreError as e:
            self.logger.warning(f"Failed to release cursor {batch.cursor_id}: {e}")
