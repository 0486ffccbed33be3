"""
Filter system for document queries.

Filters are expressed as an immutable tree (or parsed from MongoDB-style
dictionaries) and compiled to AQL with positional bind variables.

Example usage:
    from docstore.db.filters import MongoFilterParser, AQLFilterBackend

    # Parse MongoDB-style filter
    parser = MongoFilterParser()
    tree = parser.parse({
        "$and": [
            {"type": "alert"},
            {"priority": {"$gte": 5}},
        ]
    })

    # Convert to AQL
    compiled = AQLFilterBackend().compile(tree)
    compiled.expression  # '(d.doc.type == @a0 && d.doc.priority >= @a1)'
    compiled.bind_vars   # {'a0': 'alert', 'a1': 5}
"""

from .base import (
    FilterOperator,
    Filter,
    FILTER_TYPES,
    AnyFilter,
    AndFilter,
    OrFilter,
    EqFilter,
    GtFilter,
    GteFilter,
    LtFilter,
    LteFilter,
    InArrayFilter,
    LikeFilter,
    NotFilter,
    ExistsFilter,
    MongoFilterParser,
    FilterBackend,
)

from .aql_backend import AQLFilterBackend, CompiledFilter

__all__ = [
    # Core classes
    'FilterOperator',
    'Filter',
    'FILTER_TYPES',
    'MongoFilterParser',
    'FilterBackend',

    # Variants
    'AnyFilter',
    'AndFilter',
    'OrFilter',
    'EqFilter',
    'GtFilter',
    'GteFilter',
    'LtFilter',
    'LteFilter',
    'InArrayFilter',
    'LikeFilter',
    'NotFilter',
    'ExistsFilter',

    # Backends
    'AQLFilterBackend',
    'CompiledFilter',
]
