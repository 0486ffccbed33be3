#!/usr/bin/env python3
"""
AQL backend for document filters.
Lowers Filter trees to ArangoDB AQL boolean fragments with bind variables.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .base import (
    FilterBackend, Filter,
    AnyFilter, AndFilter, OrFilter,
    EqFilter, GtFilter, GteFilter, LtFilter, LteFilter, InArrayFilter,
)
from ...exceptions import InvalidCompositionError, InvalidFilterError, UnsupportedFilterError

# One segment of a dotted payload path
FIELD_SEGMENT = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')


@dataclass(frozen=True)
class CompiledFilter:
    """
    Result of compiling a Filter tree.

    Every @aN placeholder in ``expression`` has exactly one entry in
    ``bind_vars``. ``expression`` is None for AnyFilter.
    """
    expression: Optional[str]
    bind_vars: Dict[str, Any] = field(default_factory=dict)
    next_counter: int = 0


class AQLFilterBackend(FilterBackend):
    """
    Converts Filter trees to AQL FILTER expressions.
    Field references always point into the ``doc`` payload wrapper of the
    iteration variable, never at the document's own metadata.
    """

    # Comparison leaves and their AQL operators
    COMPARISON_OPERATORS = {
        EqFilter: "==",
        GtFilter: ">",
        GteFilter: ">=",
        LtFilter: "<",
        LteFilter: "<=",
        InArrayFilter: "IN",
    }

    LOGICAL_OPERATORS = {
        AndFilter: "&&",
        OrFilter: "||",
    }

    def __init__(self, doc_var: str = 'd', payload_field: str = 'doc', arg_prefix: str = 'a'):
        """
        Initialize AQL backend.

        Args:
            doc_var: Iteration variable used in the FOR loop
            payload_field: Wrapper field holding the user payload
            arg_prefix: Prefix of generated bind-variable names
        """
        self.doc_var = doc_var
        self.payload_field = payload_field
        self.arg_prefix = arg_prefix

    def supports_filter(self, filter_type: type) -> bool:
        """Check if AQL backend can compile a filter variant."""
        return (
            filter_type is AnyFilter
            or filter_type in self.LOGICAL_OPERATORS
            or filter_type in self.COMPARISON_OPERATORS
        )

    def compile(self, filter: Filter, arg_counter: int = 0) -> CompiledFilter:
        """
        Compile a Filter tree into an AQL fragment.

        Args:
            filter: The filter tree
            arg_counter: First free bind-variable index; 0 for a fresh query

        Returns:
            CompiledFilter with the expression, its bind variables and the
            next free counter value

        Raises:
            InvalidCompositionError: If AnyFilter is not the sole filter
            UnsupportedFilterError: For Like, Not, Exists or unknown variants
        """
        if isinstance(filter, AnyFilter):
            if arg_counter > 0:
                raise InvalidCompositionError("AnyFilter cannot be used together with other filters.")
            return CompiledFilter(None, {}, arg_counter)

        filter_type = type(filter)

        if filter_type in self.LOGICAL_OPERATORS:
            return self._compile_logical(filter, arg_counter)

        if filter_type in self.COMPARISON_OPERATORS:
            return self._compile_comparison(filter, arg_counter)

        raise UnsupportedFilterError(filter_type.__name__, "AQL")

    def _compile_logical(self, filter: Filter, arg_counter: int) -> CompiledFilter:
        """Compile And/Or, threading the counter from the left child into the right."""
        left = self.compile(filter.a_filter, arg_counter)
        if left.expression is None:
            # AnyFilter on the left always arrives here with counter 0
            raise InvalidCompositionError("AnyFilter cannot be used together with other filters.")
        right = self.compile(filter.b_filter, left.next_counter)

        op = self.LOGICAL_OPERATORS[type(filter)]
        bind_vars = dict(left.bind_vars)
        bind_vars.update(right.bind_vars)
        return CompiledFilter(
            f"({left.expression} {op} {right.expression})",
            bind_vars,
            right.next_counter
        )

    def _compile_comparison(self, filter: Filter, arg_counter: int) -> CompiledFilter:
        """Compile a single comparison leaf."""
        op = self.COMPARISON_OPERATORS[type(filter)]
        arg = f"{self.arg_prefix}{arg_counter}"
        return CompiledFilter(
            f"{self.field_path(filter.prop)} {op} @{arg}",
            {arg: filter.val},
            arg_counter + 1
        )

    def field_path(self, prop: str) -> str:
        """
        Get the AQL reference for a payload field.

        Field names are written into the query text, so every dotted segment
        must be a plain identifier.

        Raises:
            InvalidFilterError: If a segment is not an identifier
        """
        if not isinstance(prop, str) or not all(FIELD_SEGMENT.fullmatch(part) for part in prop.split('.')):
            raise InvalidFilterError(f"Invalid field name: {prop!r}")
        return f"{self.doc_var}.{self.payload_field}.{prop}"
