"""
Document store
Schemaless document storage on ArangoDB with composable query filters.
"""

from .document_store import DocumentStore
from .config import Config
from .db import ArangoHttpTransport, Transport, CursorBatch, Index, Asc, Desc, AndOrder
from .db.filters import (
    AnyFilter, AndFilter, OrFilter,
    EqFilter, GtFilter, GteFilter, LtFilter, LteFilter, InArrayFilter,
    LikeFilter, NotFilter, ExistsFilter,
    MongoFilterParser,
)
from .exceptions import (
    DocumentStoreError,
    QueryError,
    InvalidCompositionError,
    UnsupportedFilterError,
    InvalidFilterError,
    ValidationError,
    StorageError,
    DocumentNotFoundError,
    DuplicateDocumentError,
    CollectionNotFoundError,
    TransportError,
    PaginationLimitError,
)

__version__ = "0.1.0"

__all__ = [
    "DocumentStore",
    "Config",
    "ArangoHttpTransport",
    "Transport",
    "CursorBatch",
    "Index",
    "Asc",
    "Desc",
    "AndOrder",
    "AnyFilter",
    "AndFilter",
    "OrFilter",
    "EqFilter",
    "GtFilter",
    "GteFilter",
    "LtFilter",
    "LteFilter",
    "InArrayFilter",
    "LikeFilter",
    "NotFilter",
    "ExistsFilter",
    "MongoFilterParser",
    "DocumentStoreError",
    "QueryError",
    "InvalidCompositionError",
    "UnsupportedFilterError",
    "InvalidFilterError",
    "ValidationError",
    "StorageError",
    "DocumentNotFoundError",
    "DuplicateDocumentError",
    "CollectionNotFoundError",
    "TransportError",
    "PaginationLimitError",
]
