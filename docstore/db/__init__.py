"""
Database module for the document store
Handles AQL generation and HTTP access to ArangoDB
"""

from .transport import Transport, ArangoHttpTransport, CursorBatch
from .cursor import CursorDrainer
from .query_builder import QueryBuilder, BuiltQuery, Asc, Desc, AndOrder
from .indexes import Index

__all__ = [
    'Transport', 'ArangoHttpTransport', 'CursorBatch', 'CursorDrainer',
    'QueryBuilder', 'BuiltQuery', 'Asc', 'Desc', 'AndOrder', 'Index'
]
