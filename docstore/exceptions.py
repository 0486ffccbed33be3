"""
Exception classes for the document store.
"""

from typing import Optional


class DocumentStoreError(Exception):
    """Base exception for all document store errors."""
    pass


class QueryError(DocumentStoreError):
    """Raised when a filter cannot be turned into a query."""
    pass


class InvalidCompositionError(QueryError):
    """Raised when AnyFilter is combined with other filters."""
    pass


class UnsupportedFilterError(QueryError):
    """Raised when a filter variant cannot be compiled."""
    def __init__(self, filter_type: str, backend: str = "AQL"):
        super().__init__(f"Filter {filter_type} is not supported by {backend}")
        self.filter_type = filter_type
        self.backend = backend


class InvalidFilterError(QueryError):
    """Raised when a Mongo-style filter dictionary is malformed."""
    pass


class ValidationError(DocumentStoreError):
    """Raised when input validation fails."""
    pass


class ServerError(DocumentStoreError):
    """
    Base for errors reported by the database server.

    Carries the HTTP status, the ArangoDB errorNum and the server's
    error message when the error came from an HTTP response.
    """
    def __init__(self,
                 message: str,
                 status: Optional[int] = None,
                 error_num: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.error_num = error_num


class StorageError(ServerError):
    """Raised when a storage operation fails on a missing or conflicting target."""
    pass


class DocumentNotFoundError(StorageError):
    """Raised when a document key does not exist in the collection."""
    pass


class DuplicateDocumentError(StorageError):
    """Raised when inserting a document whose key already exists."""
    pass


class CollectionNotFoundError(StorageError):
    """Raised when the target collection does not exist."""
    pass


class TransportError(ServerError):
    """Raised when the HTTP call fails or the server reports an error."""
    pass


class PaginationLimitError(DocumentStoreError):
    """Raised when draining a cursor exceeds the configured bounds."""
    def __init__(self, message: str, batches: int, documents: int):
        super().__init__(message)
        self.batches = batches
        self.documents = documents
