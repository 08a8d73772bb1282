"""Tests for hydrator.core.errors module."""

import pytest

from hydrator.core.errors import (
    AnonymousFieldError,
    ConfigError,
    EmbeddedFieldError,
    ErrorCategory,
    ErrorContext,
    HydrationCancelledError,
    HydrationError,
    HydratorError,
    InvalidResolverError,
    InvalidRootKindError,
    KindMismatchError,
    MissingSourceFieldError,
    PrivateFieldError,
    ReadOnlyRecordError,
    RecursiveHydrationError,
    ResolverError,
    StructuralError,
    UnsupportedFieldKindError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty_context_serialises_to_empty_dict(self):
        assert ErrorContext().to_dict() == {}

    def test_only_set_fields_are_serialised(self):
        ctx = ErrorContext(record="Order", field="customer", index=0)
        assert ctx.to_dict() == {"record": "Order", "field": "customer", "index": 0}

    def test_metadata_is_merged(self):
        ctx = ErrorContext(record="Order", metadata={"resolver": "find_customer"})
        assert ctx.to_dict() == {"record": "Order", "resolver": "find_customer"}


class TestHydratorError:
    """Test the base error class."""

    def test_default_category_is_internal(self):
        assert HydratorError("x").category == ErrorCategory.INTERNAL

    def test_explicit_category_wins(self):
        err = HydratorError("x", category=ErrorCategory.CONFIG)
        assert err.category == ErrorCategory.CONFIG

    def test_cause_is_chained(self):
        original = LookupError("no row 42")
        err = ResolverError("finder failed", cause=original)
        assert err.cause is original
        assert err.__cause__ is original

    def test_with_context_sets_known_fields_and_metadata(self):
        err = ResolverError("boom").with_context(record="Order", field="customer", resolver="find")
        assert err.context.record == "Order"
        assert err.context.field == "customer"
        assert err.context.metadata == {"resolver": "find"}

    def test_with_context_keeps_existing_values(self):
        err = ResolverError("boom").with_context(path="lines[1].product")
        err.with_context(path="lines", field="product")
        assert err.context.path == "lines[1].product"
        assert err.context.field == "product"

    def test_with_context_skips_none(self):
        err = KindMismatchError("bad").with_context(index=None)
        assert err.context.index is None
        assert "index" not in err.context.metadata

    def test_to_dict(self):
        err = ResolverError("boom", cause=ValueError("inner")).with_context(field="customer")
        d = err.to_dict()
        assert d["error_type"] == "ResolverError"
        assert d["message"] == "boom"
        assert d["category"] == "RESOLVER"
        assert d["context"] == {"field": "customer"}
        assert d["cause"] == "inner"

    def test_repr(self):
        assert repr(KindMismatchError("bad")) == "KindMismatchError('bad', category=TYPE)"


class TestHierarchy:
    """Every error kind sits where callers expect it."""

    @pytest.mark.parametrize(
        "cls",
        [InvalidRootKindError, EmbeddedFieldError, UnsupportedFieldKindError, PrivateFieldError, ReadOnlyRecordError],
    )
    def test_structural_errors(self, cls):
        assert issubclass(cls, StructuralError)
        assert cls("x").category == ErrorCategory.STRUCTURE

    def test_anonymous_field_alias(self):
        assert AnonymousFieldError is EmbeddedFieldError

    def test_read_only_is_private(self):
        assert issubclass(ReadOnlyRecordError, PrivateFieldError)

    def test_missing_source_is_resolver_error(self):
        assert issubclass(MissingSourceFieldError, ResolverError)
        assert MissingSourceFieldError("x").category == ErrorCategory.RESOLVER

    def test_categories(self):
        assert KindMismatchError("x").category == ErrorCategory.TYPE
        assert RecursiveHydrationError("x").category == ErrorCategory.RECURSION
        assert HydrationCancelledError("x").category == ErrorCategory.CANCELLED
        assert InvalidResolverError("x").category == ErrorCategory.CONFIG
        assert issubclass(InvalidResolverError, ConfigError)


class TestHydrationError:
    """Test the aggregate error."""

    def test_requires_errors(self):
        with pytest.raises(ValueError):
            HydrationError([])

    def test_keeps_observation_order(self):
        first = ResolverError("first")
        second = KindMismatchError("second")
        err = HydrationError([first, second], record="Order")
        assert err.errors == [first, second]
        assert err.first is first
        assert err.last is second
        assert len(err) == 2
        assert list(err) == [first, second]

    def test_message_and_category_follow_last(self):
        err = HydrationError([ResolverError("first"), KindMismatchError("second")], record="Order")
        assert err.message == "Failed to hydrate Order: 2 errors; last: second"
        assert err.category == ErrorCategory.TYPE
        assert err.context.record == "Order"

    def test_single_error_message(self):
        err = HydrationError([ResolverError("boom")])
        assert err.message == "Failed to hydrate: 1 error; last: boom"

    def test_leaves_flattens_recursive_errors(self):
        leaf = ResolverError("product lookup failed").with_context(path="lines[1].product")
        nested = HydrationError([leaf], record="LineItem")
        wrapper = RecursiveHydrationError("nested failed", cause=nested)
        top = ResolverError("customer lookup failed")
        err = HydrationError([top, wrapper], record="Order")
        assert err.leaves() == [top, leaf]

    def test_to_dict_lists_errors(self):
        err = HydrationError([ResolverError("a"), ResolverError("b")])
        d = err.to_dict()
        assert d["error_type"] == "HydrationError"
        assert [e["message"] for e in d["errors"]] == ["a", "b"]
