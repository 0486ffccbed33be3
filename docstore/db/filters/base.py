#!/usr/bin/env python3
"""
Filter expression tree for document queries.

Filters form an immutable binary tree over a closed set of variants.
Backends walk the tree and lower it into a native query fragment; the
MongoFilterParser builds the same tree from MongoDB-style dictionaries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Any, Dict, List, Optional, Type, Union

from ...exceptions import InvalidFilterError, UnsupportedFilterError


class FilterOperator(Enum):
    """MongoDB-style operators understood by the parser."""
    # Comparison
    EQ = "$eq"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"

    # Array/List
    IN = "$in"

    # Logical
    AND = "$and"
    OR = "$or"
    NOT = "$not"

    # Existence
    EXISTS = "$exists"

    # Text
    REGEX = "$regex"

    @classmethod
    def from_string(cls, value: str) -> Optional['FilterOperator']:
        """Convert string to operator."""
        for op in cls:
            if op.value == value:
                return op
        return None


@dataclass(frozen=True)
class AnyFilter:
    """Matches every document. Only valid as the sole top-level filter."""


@dataclass(frozen=True)
class AndFilter:
    a_filter: 'Filter'
    b_filter: 'Filter'


@dataclass(frozen=True)
class OrFilter:
    a_filter: 'Filter'
    b_filter: 'Filter'


@dataclass(frozen=True)
class EqFilter:
    prop: str
    val: Any


@dataclass(frozen=True)
class GtFilter:
    prop: str
    val: Any


@dataclass(frozen=True)
class GteFilter:
    prop: str
    val: Any


@dataclass(frozen=True)
class LtFilter:
    prop: str
    val: Any


@dataclass(frozen=True)
class LteFilter:
    prop: str
    val: Any


@dataclass(frozen=True)
class InArrayFilter:
    prop: str
    val: Any


@dataclass(frozen=True)
class LikeFilter:
    prop: str
    val: str


@dataclass(frozen=True)
class NotFilter:
    inner: 'Filter'


@dataclass(frozen=True)
class ExistsFilter:
    prop: str


Filter = Union[
    AnyFilter, AndFilter, OrFilter,
    EqFilter, GtFilter, GteFilter, LtFilter, LteFilter, InArrayFilter,
    LikeFilter, NotFilter, ExistsFilter,
]

# Every variant of Filter, in declaration order
FILTER_TYPES = (
    AnyFilter, AndFilter, OrFilter,
    EqFilter, GtFilter, GteFilter, LtFilter, LteFilter, InArrayFilter,
    LikeFilter, NotFilter, ExistsFilter,
)

_COMPARISON_FILTERS = {
    FilterOperator.EQ: EqFilter,
    FilterOperator.GT: GtFilter,
    FilterOperator.GTE: GteFilter,
    FilterOperator.LT: LtFilter,
    FilterOperator.LTE: LteFilter,
    FilterOperator.IN: InArrayFilter,
}


class MongoFilterParser:
    """
    Parses MongoDB-style filter dictionaries into a Filter tree.
    This is backend-agnostic; the resulting tree is handed to a
    FilterBackend for compilation.
    """

    def __init__(self, max_depth: int = 10):
        """
        Initialize the parser.

        Args:
            max_depth: Maximum nesting depth to prevent DoS attacks
        """
        self.max_depth = max_depth

    def parse(self, filters: Optional[Dict[str, Any]]) -> Filter:
        """
        Parse MongoDB-style filters into a Filter tree.

        Args:
            filters: MongoDB-style filter dictionary

        Returns:
            Filter tree; AnyFilter for an empty dictionary

        Raises:
            InvalidFilterError: If the filter is invalid or too deeply nested
        """
        if not filters:
            # Empty filter matches everything
            return AnyFilter()

        return self._parse_dict(filters, 1)

    def _parse_dict(self, filters: Any, depth: int) -> Filter:
        """Parse a dictionary of filters, implicitly AND-ing its entries."""
        if depth > self.max_depth:
            raise InvalidFilterError(f"Filter nesting exceeds maximum depth of {self.max_depth}")
        if not isinstance(filters, dict) or not filters:
            raise InvalidFilterError(f"Expected a non-empty dictionary, got {filters!r}")

        conditions: List[Filter] = []

        for key, value in filters.items():
            self._check_key(key)
            if key.startswith('$'):
                op = FilterOperator.from_string(key)
                if not op:
                    raise InvalidFilterError(f"Unknown operator: {key}")

                if op in {FilterOperator.AND, FilterOperator.OR, FilterOperator.NOT}:
                    conditions.append(self._parse_logical(op, value, depth))
                else:
                    # Operator without field is invalid at top level
                    raise InvalidFilterError(f"Operator {key} requires a field")
            else:
                conditions.extend(self._parse_field(key, value, depth))

        return self._fold(AndFilter, conditions)

    def _parse_logical(self, operator: FilterOperator, value: Any, depth: int) -> Filter:
        """Parse logical operators ($and, $or, $not)."""
        if operator in {FilterOperator.AND, FilterOperator.OR}:
            if not isinstance(value, list) or not value:
                raise InvalidFilterError(f"{operator.value} requires a non-empty list")

            conditions = [self._parse_dict(item, depth + 1) for item in value]
            combinator = AndFilter if operator == FilterOperator.AND else OrFilter
            return self._fold(combinator, conditions)

        if operator == FilterOperator.NOT:
            return NotFilter(self._parse_dict(value, depth + 1))

        raise InvalidFilterError(f"Not a logical operator: {operator.value}")

    def _parse_field(self, field: str, value: Any, depth: int) -> List[Filter]:
        """Parse field-level conditions."""
        if depth > self.max_depth:
            raise InvalidFilterError(f"Filter nesting exceeds maximum depth of {self.max_depth}")
        if isinstance(value, dict):
            for key in value:
                self._check_key(key)
        if not (isinstance(value, dict) and any(k.startswith('$') for k in value)):
            # Direct equality
            return [EqFilter(field, value)]

        conditions: List[Filter] = []
        for op_str, op_value in value.items():
            op = FilterOperator.from_string(op_str)
            if not op:
                raise InvalidFilterError(f"Unknown operator: {op_str}")

            if op in _COMPARISON_FILTERS:
                if op == FilterOperator.IN and not isinstance(op_value, list):
                    raise InvalidFilterError(f"{op_str} requires a list for field {field}")
                conditions.append(_COMPARISON_FILTERS[op](field, op_value))
            elif op == FilterOperator.NOT:
                conditions.append(NotFilter(self._fold(AndFilter, self._parse_field(field, op_value, depth + 1))))
            elif op == FilterOperator.EXISTS:
                exists = ExistsFilter(field)
                conditions.append(exists if op_value else NotFilter(exists))
            elif op == FilterOperator.REGEX:
                conditions.append(LikeFilter(field, op_value))
            else:
                raise InvalidFilterError(f"Operator {op_str} cannot be applied to field {field}")

        return conditions

    @staticmethod
    def _check_key(key: Any) -> None:
        if not isinstance(key, str):
            raise InvalidFilterError(f"Filter keys must be strings, got {key!r}")

    @staticmethod
    def _fold(combinator: Type, conditions: List[Filter]) -> Filter:
        """Fold a list of conditions left into nested binary filters."""
        return reduce(combinator, conditions)


class FilterBackend(ABC):
    """
    Abstract base class for filter backends.
    Each query language implements this to lower Filter trees
    into its native format.
    """

    @abstractmethod
    def compile(self, filter: Filter, arg_counter: int = 0) -> Any:
        """
        Compile a Filter tree to the backend's native format.

        Args:
            filter: The filter tree
            arg_counter: First free bind-variable index

        Returns:
            Backend-specific query fragment
        """
        pass

    @abstractmethod
    def supports_filter(self, filter_type: type) -> bool:
        """
        Check if this backend can compile a filter variant.

        Args:
            filter_type: The filter class to check

        Returns:
            True if supported, False otherwise
        """
        pass

    def validate(self, filter: Filter) -> None:
        """
        Validate that every node in the tree is supported.

        Raises:
            UnsupportedFilterError: If an unsupported variant is found
        """
        if not self.supports_filter(type(filter)):
            raise UnsupportedFilterError(type(filter).__name__, self.__class__.__name__)
        if isinstance(filter, (AndFilter, OrFilter)):
            self.validate(filter.a_filter)
            self.validate(filter.b_filter)
