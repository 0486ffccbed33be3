#!/usr/bin/env python3
"""
Tests for the filter tree, the MongoDB-style parser and the AQL backend.
"""

import pytest

from docstore.db.filters import (
    MongoFilterParser, AQLFilterBackend, CompiledFilter, FILTER_TYPES,
    AnyFilter, AndFilter, OrFilter,
    EqFilter, GtFilter, GteFilter, LtFilter, LteFilter, InArrayFilter,
    LikeFilter, NotFilter, ExistsFilter,
)
from docstore.exceptions import (
    InvalidCompositionError, InvalidFilterError, UnsupportedFilterError, QueryError
)


class TestMongoFilterParser:
    """Test the MongoDB filter parser."""

    def test_empty_filter(self):
        """Test parsing empty filter."""
        parser = MongoFilterParser()
        assert parser.parse({}) == AnyFilter()
        assert parser.parse(None) == AnyFilter()

    def test_simple_equality(self):
        """Test simple field equality."""
        parser = MongoFilterParser()
        assert parser.parse({"type": "alert"}) == EqFilter("type", "alert")

    def test_multiple_equalities(self):
        """Test multiple field equalities fold into a left-nested AND."""
        parser = MongoFilterParser()
        tree = parser.parse({"type": "alert", "priority": 5, "team": "ops"})

        assert tree == AndFilter(
            AndFilter(EqFilter("type", "alert"), EqFilter("priority", 5)),
            EqFilter("team", "ops")
        )

    def test_comparison_operators(self):
        """Test comparison operators on one field."""
        parser = MongoFilterParser()
        tree = parser.parse({"priority": {"$gte": 5, "$lt": 10}})

        assert tree == AndFilter(GteFilter("priority", 5), LtFilter("priority", 10))

    def test_all_comparisons(self):
        """Test every comparison operator maps to its variant."""
        parser = MongoFilterParser()
        assert parser.parse({"a": {"$eq": 1}}) == EqFilter("a", 1)
        assert parser.parse({"a": {"$gt": 1}}) == GtFilter("a", 1)
        assert parser.parse({"a": {"$lte": 1}}) == LteFilter("a", 1)

    def test_in_operator(self):
        """Test $in operator."""
        parser = MongoFilterParser()
        tree = parser.parse({"status": {"$in": ["active", "pending"]}})
        assert tree == InArrayFilter("status", ["active", "pending"])

    def test_in_requires_list(self):
        """Test $in with a scalar is rejected."""
        with pytest.raises(InvalidFilterError):
            MongoFilterParser().parse({"status": {"$in": "active"}})

    def test_logical_or(self):
        """Test $or operator."""
        parser = MongoFilterParser()
        tree = parser.parse({
            "$or": [
                {"status": "active"},
                {"urgent": True}
            ]
        })
        assert tree == OrFilter(EqFilter("status", "active"), EqFilter("urgent", True))

    def test_single_item_logical(self):
        """Test a one-element $and collapses to its only condition."""
        tree = MongoFilterParser().parse({"$and": [{"a": 1}]})
        assert tree == EqFilter("a", 1)

    def test_nested_logical(self):
        """Test $or nested inside $and."""
        tree = MongoFilterParser().parse({
            "$and": [
                {"type": "alert"},
                {"$or": [{"priority": {"$gte": 5}}, {"urgent": True}]}
            ]
        })
        assert tree == AndFilter(
            EqFilter("type", "alert"),
            OrFilter(GteFilter("priority", 5), EqFilter("urgent", True))
        )

    def test_not_exists_and_regex(self):
        """Test operators that parse into variants the AQL backend rejects."""
        parser = MongoFilterParser()
        assert parser.parse({"$not": {"type": "info"}}) == NotFilter(EqFilter("type", "info"))
        assert parser.parse({"age": {"$not": {"$gt": 5}}}) == NotFilter(GtFilter("age", 5))
        assert parser.parse({"email": {"$exists": True}}) == ExistsFilter("email")
        assert parser.parse({"email": {"$exists": False}}) == NotFilter(ExistsFilter("email"))
        assert parser.parse({"name": {"$regex": "^jo"}}) == LikeFilter("name", "^jo")

    def test_unknown_operator(self):
        """Test unknown operators are rejected."""
        with pytest.raises(InvalidFilterError, match="Unknown operator"):
            MongoFilterParser().parse({"a": {"$near": 1}})
        with pytest.raises(InvalidFilterError, match="Unknown operator"):
            MongoFilterParser().parse({"$nor": []})

    def test_field_operator_at_top_level(self):
        """Test a comparison operator without a field is rejected."""
        with pytest.raises(InvalidFilterError, match="requires a field"):
            MongoFilterParser().parse({"$gt": 5})

    def test_logical_requires_list(self):
        """Test $and/$or with a non-list operand are rejected."""
        with pytest.raises(InvalidFilterError):
            MongoFilterParser().parse({"$or": {"a": 1}})
        with pytest.raises(InvalidFilterError):
            MongoFilterParser().parse({"$and": []})

    def test_max_depth(self):
        """Test deeply nested filters are rejected."""
        parser = MongoFilterParser(max_depth=3)
        deep = {"a": 1}
        for _ in range(5):
            deep = {"$and": [deep]}

        with pytest.raises(InvalidFilterError, match="maximum depth"):
            parser.parse(deep)

    def test_field_level_not_depth(self):
        """Test nested field-level $not is bounded by the maximum depth."""
        parser = MongoFilterParser(max_depth=3)
        deep = 1
        for _ in range(3000):
            deep = {"$not": deep} if isinstance(deep, dict) else {"$eq": deep}
        with pytest.raises(InvalidFilterError, match="maximum depth"):
            parser.parse({"a": deep})

    def test_field_level_not_within_depth(self):
        """Test shallow field-level $not still parses."""
        result = MongoFilterParser(max_depth=3).parse({"a": {"$not": {"$gt": 5}}})
        assert result == NotFilter(GtFilter("a", 5))

    @pytest.mark.parametrize("filters", [
        {1: 2},
        {"$or": [{None: 1}]},
        {"a": {2: 3, "$gt": 1}},
    ])
    def test_non_string_keys(self, filters):
        """Test non-string keys are reported as invalid filters."""
        with pytest.raises(InvalidFilterError, match="must be strings"):
            MongoFilterParser().parse(filters)

    def test_errors_are_query_errors(self):
        """Test parser errors share the query error base."""
        with pytest.raises(QueryError):
            MongoFilterParser().parse({"$gt": 5})


class TestAQLFilterBackend:
    """Test compilation of filter trees to AQL."""

    def setup_method(self):
        self.backend = AQLFilterBackend()

    def test_any_filter(self):
        """Test AnyFilter compiles to no expression."""
        assert self.backend.compile(AnyFilter()) == CompiledFilter(None, {}, 0)

    def test_any_filter_after_other_filters(self):
        """Test AnyFilter is rejected once arguments were allocated."""
        with pytest.raises(InvalidCompositionError):
            self.backend.compile(AnyFilter(), 1)
        with pytest.raises(InvalidCompositionError):
            self.backend.compile(AnyFilter(), 7)

    def test_any_filter_inside_composition(self):
        """Test AnyFilter combined with a sibling is rejected on either side."""
        with pytest.raises(InvalidCompositionError):
            self.backend.compile(AndFilter(EqFilter("a", 1), AnyFilter()))
        with pytest.raises(InvalidCompositionError):
            self.backend.compile(OrFilter(AnyFilter(), EqFilter("a", 1)))

    @pytest.mark.parametrize("filter_type,op", [
        (EqFilter, "=="),
        (GtFilter, ">"),
        (GteFilter, ">="),
        (LtFilter, "<"),
        (LteFilter, "<="),
    ])
    def test_comparisons(self, filter_type, op):
        """Test each comparison leaf renders its operator."""
        compiled = self.backend.compile(filter_type("age", 30))

        assert compiled.expression == f"d.doc.age {op} @a0"
        assert compiled.bind_vars == {"a0": 30}
        assert compiled.next_counter == 1

    def test_in_array(self):
        """Test InArrayFilter renders IN."""
        compiled = self.backend.compile(InArrayFilter("status", ["a", "b"]), 4)

        assert compiled.expression == "d.doc.status IN @a4"
        assert compiled.bind_vars == {"a4": ["a", "b"]}
        assert compiled.next_counter == 5

    def test_and(self):
        """Test the canonical two-condition AND."""
        compiled = self.backend.compile(AndFilter(EqFilter("a", 5), EqFilter("b", 7)))

        assert compiled.expression == "(d.doc.a == @a0 && d.doc.b == @a1)"
        assert compiled.bind_vars == {"a0": 5, "a1": 7}
        assert compiled.next_counter == 2

    def test_or(self):
        """Test OR joins with ||."""
        compiled = self.backend.compile(OrFilter(LtFilter("a", 1), GtFilter("a", 9)))

        assert compiled.expression == "(d.doc.a < @a0 || d.doc.a > @a1)"
        assert compiled.bind_vars == {"a0": 1, "a1": 9}

    def test_nested_counters_never_collide(self):
        """Test sibling subtrees get disjoint, sequential placeholders."""
        left = AndFilter(EqFilter("a", 1), OrFilter(EqFilter("b", 2), EqFilter("c", 3)))
        right = OrFilter(GtFilter("d", 4), InArrayFilter("e", [5]))
        compiled = self.backend.compile(AndFilter(left, right))

        assert compiled.expression == (
            "((d.doc.a == @a0 && (d.doc.b == @a1 || d.doc.c == @a2)) "
            "&& (d.doc.d > @a3 || d.doc.e IN @a4))"
        )
        assert compiled.bind_vars == {"a0": 1, "a1": 2, "a2": 3, "a3": 4, "a4": [5]}
        assert compiled.next_counter == 5

    def test_bind_keys_are_disjoint_union(self):
        """Test AND keys equal the union of compiling each side in sequence."""
        a = OrFilter(EqFilter("x", 1), EqFilter("y", 2))
        b = AndFilter(EqFilter("z", 3), LteFilter("w", 4))

        first = self.backend.compile(a)
        second = self.backend.compile(b, first.next_counter)
        combined = self.backend.compile(AndFilter(a, b))

        assert not set(first.bind_vars) & set(second.bind_vars)
        assert set(combined.bind_vars) == set(first.bind_vars) | set(second.bind_vars)

    def test_deterministic(self):
        """Test compiling the same tree twice yields identical output."""
        tree = OrFilter(AndFilter(EqFilter("a", 1), GtFilter("b", 2)), InArrayFilter("c", [3, 4]))

        assert self.backend.compile(tree, 3) == self.backend.compile(tree, 3)

    def test_nested_field_paths(self):
        """Test dotted props stay inside the payload wrapper."""
        compiled = self.backend.compile(EqFilter("address.city", "Berlin"))
        assert compiled.expression == "d.doc.address.city == @a0"

    @pytest.mark.parametrize("prop", [
        "x == null || true || d.doc.y",
        "a b",
        "a.",
        ".a",
        "1a",
        "a[0]",
        "a`b",
        "a\n",
        "",
    ])
    def test_invalid_field_names(self, prop):
        """Test field names that are not dotted identifiers never reach the query."""
        with pytest.raises(InvalidFilterError, match="Invalid field name"):
            self.backend.compile(EqFilter(prop, 1))

    def test_injected_dict_key_rejected(self):
        """Test a Mongo-style key carrying AQL is rejected before compilation output."""
        tree = MongoFilterParser().parse({"nope == 1 || true || d.doc.z": 1})
        with pytest.raises(InvalidFilterError):
            self.backend.compile(tree)

    def test_field_names_with_underscores_and_digits(self):
        compiled = self.backend.compile(GtFilter("_meta.score2", 1))
        assert compiled.expression == "d.doc._meta.score2 > @a0"

    @pytest.mark.parametrize("tree", [
        LikeFilter("name", "jo%"),
        NotFilter(EqFilter("a", 1)),
        ExistsFilter("email"),
    ])
    def test_unimplemented_variants_fail(self, tree):
        """Test Like, Not and Exists raise instead of producing a fragment."""
        with pytest.raises(UnsupportedFilterError) as exc_info:
            self.backend.compile(tree)
        assert exc_info.value.filter_type == type(tree).__name__

    def test_unimplemented_variant_nested(self):
        """Test an unsupported leaf deep in the tree still fails."""
        with pytest.raises(UnsupportedFilterError):
            self.backend.compile(AndFilter(EqFilter("a", 1), ExistsFilter("b")))

    def test_unknown_variant(self):
        """Test objects outside the filter set are rejected by name."""
        class Near:
            pass

        with pytest.raises(UnsupportedFilterError, match="Near"):
            self.backend.compile(Near())

    def test_supports_filter(self):
        """Test the capability check covers exactly the compilable variants."""
        supported = {t for t in FILTER_TYPES if self.backend.supports_filter(t)}
        assert supported == {
            AnyFilter, AndFilter, OrFilter,
            EqFilter, GtFilter, GteFilter, LtFilter, LteFilter, InArrayFilter,
        }

    def test_validate(self):
        """Test validate walks the tree."""
        self.backend.validate(AndFilter(EqFilter("a", 1), OrFilter(EqFilter("b", 2), GtFilter("c", 3))))
        with pytest.raises(UnsupportedFilterError):
            self.backend.validate(OrFilter(EqFilter("a", 1), LikeFilter("b", "x")))

    def test_custom_names(self):
        """Test the iteration variable and payload field are configurable."""
        backend = AQLFilterBackend(doc_var="row", payload_field="data", arg_prefix="p")
        compiled = backend.compile(EqFilter("a", 1))
        assert compiled.expression == "row.data.a == @p0"
        assert compiled.bind_vars == {"p0": 1}

    def test_filters_are_immutable(self):
        """Test filter nodes cannot be modified after construction."""
        leaf = EqFilter("a", 1)
        with pytest.raises(AttributeError):
            leaf.val = 2
