#!/usr/bin/env python3
"""
AQL query assembly for collection reads, bulk updates and removals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .filters.aql_backend import AQLFilterBackend, CompiledFilter
from ..exceptions import ValidationError

# Largest integer JSON clients can round-trip exactly; used as LIMIT count
# when only an offset was requested
UNBOUNDED_LIMIT = 2 ** 53 - 1


@dataclass(frozen=True)
class Asc:
    prop: str


@dataclass(frozen=True)
class Desc:
    prop: str


@dataclass(frozen=True)
class AndOrder:
    a_order: 'OrderBy'
    b_order: 'OrderBy'


OrderBy = Union[Asc, Desc, AndOrder]


@dataclass(frozen=True)
class BuiltQuery:
    """An AQL query string and the bind variables it references."""
    query: str
    bind_vars: Dict[str, Any] = field(default_factory=dict)


class QueryBuilder:
    """
    Renders AQL for the document store.

    The target collection is always referenced through the @@collection
    bind parameter so names are never interpolated into the query body.
    """

    def __init__(self, backend: Optional[AQLFilterBackend] = None):
        self.backend = backend or AQLFilterBackend()

    @property
    def doc_var(self) -> str:
        return self.backend.doc_var

    def build_select(self,
                     collection: str,
                     compiled: Optional[CompiledFilter] = None,
                     skip: Optional[int] = None,
                     limit: Optional[int] = None,
                     order_by: Optional[OrderBy] = None) -> BuiltQuery:
        """
        Build a query returning the payload of every matching document.

        Args:
            collection: Transport-visible collection name
            compiled: Compiled filter; None or an empty expression means no FILTER
            skip: Number of matches to skip
            limit: Maximum number of matches to return
            order_by: Sort specification

        Returns:
            BuiltQuery
        """
        lines = [self._for_clause()]
        bind_vars = self._base_bind_vars(collection, compiled)
        lines.extend(self._filter_clause(compiled))

        if order_by is not None:
            lines.append(f"    SORT {self.render_order(order_by)}")

        if skip is not None or limit is not None:
            if (skip is not None and skip < 0) or (limit is not None and limit < 0):
                raise ValidationError(f"skip and limit must be non-negative, got skip={skip}, limit={limit}")
            lines.append("    LIMIT @skip, @limit")
            bind_vars["skip"] = skip or 0
            bind_vars["limit"] = UNBOUNDED_LIMIT if limit is None else limit

        lines.append(f"    RETURN {self.doc_var}.{self.backend.payload_field}")
        return BuiltQuery("\n".join(lines), bind_vars)

    def build_count(self, collection: str, compiled: Optional[CompiledFilter] = None) -> BuiltQuery:
        """Build a query returning the number of matching documents."""
        lines = [self._for_clause()]
        lines.extend(self._filter_clause(compiled))
        lines.append("    COLLECT WITH COUNT INTO matched")
        lines.append("    RETURN matched")
        return BuiltQuery("\n".join(lines), self._base_bind_vars(collection, compiled))

    def build_update(self,
                     collection: str,
                     compiled: Optional[CompiledFilter],
                     new_doc: Dict[str, Any]) -> BuiltQuery:
        """
        Build a query replacing the payload wrapper of every match.

        mergeObjects is disabled so the stored payload is replaced, not merged.
        """
        lines = [self._for_clause()]
        lines.extend(self._filter_clause(compiled))
        lines.append(
            f"    UPDATE {self.doc_var} WITH {{ {self.backend.payload_field}: @newDoc }} "
            f"IN @@collection OPTIONS {{ mergeObjects: false }}"
        )
        bind_vars = self._base_bind_vars(collection, compiled)
        bind_vars["newDoc"] = new_doc
        return BuiltQuery("\n".join(lines), bind_vars)

    def build_remove(self, collection: str, compiled: Optional[CompiledFilter]) -> BuiltQuery:
        """Build a query removing every match."""
        lines = [self._for_clause()]
        lines.extend(self._filter_clause(compiled))
        lines.append(f"    REMOVE {self.doc_var} IN @@collection")
        return BuiltQuery("\n".join(lines), self._base_bind_vars(collection, compiled))

    def build_collection_search(self, fragment: str) -> BuiltQuery:
        """Build a query listing collection names containing ``fragment``."""
        query = (
            "FOR collection IN COLLECTIONS()\n"
            "    FILTER CONTAINS(collection.name, @prefix)\n"
            "    RETURN collection.name"
        )
        return BuiltQuery(query, {"prefix": fragment})

    def build_collection_lookup(self, name: str) -> BuiltQuery:
        """Build a query returning ``name`` if such a collection exists."""
        query = (
            "FOR collection IN COLLECTIONS()\n"
            "    FILTER collection.name == @collectionName\n"
            "    RETURN collection.name"
        )
        return BuiltQuery(query, {"collectionName": name})

    def render_order(self, order_by: OrderBy) -> str:
        """Render a sort specification as a SORT expression list."""
        if isinstance(order_by, AndOrder):
            return f"{self.render_order(order_by.a_order)}, {self.render_order(order_by.b_order)}"
        if isinstance(order_by, Asc):
            return f"{self.backend.field_path(order_by.prop)} ASC"
        if isinstance(order_by, Desc):
            return f"{self.backend.field_path(order_by.prop)} DESC"
        raise ValidationError(f"Unsupported order type. Got {type(order_by).__name__}")

    def _for_clause(self) -> str:
        return f"FOR {self.doc_var} IN @@collection"

    @staticmethod
    def _filter_clause(compiled: Optional[CompiledFilter]) -> List[str]:
        if compiled is None or compiled.expression is None:
            return []
        return [f"    FILTER {compiled.expression}"]

    @staticmethod
    def _base_bind_vars(collection: str, compiled: Optional[CompiledFilter]) -> Dict[str, Any]:
        bind_vars: Dict[str, Any] = {"@collection": collection}
        if compiled is not None:
            bind_vars.update(compiled.bind_vars)
        return bind_vars
