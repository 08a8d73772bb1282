"""
Structured error types for the hydrator.

Every failure the hydration engine can report is a ``HydratorError``. Errors
carry a category, a structured ``ErrorContext`` (record type, field,
directive, path through the object graph) and an optional chained cause, so
that a caller can log ``error.to_dict()`` and see exactly which field of
which nested record failed and why.

Manifesto:
    - **Typed hierarchy:** one class per failure kind, never a bare Exception
    - **Rich context:** errors know the record, field and graph path
    - **Error chaining:** resolver exceptions are preserved as ``cause``
    - **Explicit aggregation:** a hydration call reports *all* of its errors

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        HydratorError                             │
        │               (category, context, cause)                         │
        ├─────────────────────────────────────────────────────────────────┤
        │  STRUCTURE                 RESOLVER             TYPE            │
        │  InvalidRootKindError      ResolverError        KindMismatch-   │
        │  EmbeddedFieldError          │                  Error           │
        │  UnsupportedFieldKindError   MissingSource-                     │
        │  PrivateFieldError           FieldError                         │
        │    │                                                             │
        │  ReadOnlyRecordError                                             │
        │                                                                  │
        │  RECURSION                 CANCELLED            CONFIG          │
        │  RecursiveHydrationError   HydrationCancelled-  ConfigError     │
        │                            Error                  │             │
        │                                                 InvalidResolver-│
        │                                                 Error           │
        │                                                                  │
        │  HydrationError  ─ aggregate of every error seen in one call    │
        └─────────────────────────────────────────────────────────────────┘

Propagation:
    Structural errors (``InvalidRootKindError``, ``EmbeddedFieldError``,
    ``UnsupportedFieldKindError``, ``PrivateFieldError`` found while reading
    the record's schema) abort the record before any field is dispatched.
    Everything else is collected per field; sibling fields keep running and
    the call ends with a single ``HydrationError`` listing every error in
    the order it was observed.

Examples:
    >>> err = ResolverError("lookup failed").with_context(record="Order", field="customer")
    >>> err.context.field
    'customer'
    >>> err.to_dict()["category"]
    'RESOLVER'

Tags:
    error-handling, exception-hierarchy, error-context, hydrator

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories used for classification and logging.

    Attributes:
        STRUCTURE: The record's shape forbids hydration (bad root, bad field)
        RESOLVER: A method or registered resolver raised
        TYPE: A resolver returned a value of the wrong container kind
        RECURSION: A nested record or sequence element failed to hydrate
        CANCELLED: The hydration context was cancelled or timed out
        CONFIG: Invalid hydrator configuration or resolver registration
        INTERNAL: Bugs, unexpected state
    """

    STRUCTURE = "STRUCTURE"
    RESOLVER = "RESOLVER"
    TYPE = "TYPE"
    RECURSION = "RECURSION"
    CANCELLED = "CANCELLED"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a hydration error.

    Only the fields that are set are serialised by ``to_dict()``, so a
    root-level error does not carry empty ``field``/``index`` keys.

    Attributes:
        record: Name of the record type being hydrated
        field: Name of the annotated field
        directive: Directive found on the field
        path: Dotted path from the root record, e.g. ``"lines[2].product"``
        index: Element index when the error comes from a sequence element
        metadata: Additional key-value pairs
    """

    record: str | None = None
    field: str | None = None
    directive: str | None = None
    path: str | None = None
    index: int | None = None
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["record", "field", "directive", "path", "index"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class HydratorError(Exception):
    """
    Base exception for all hydrator errors.

    Subclasses set ``default_category``. The optional ``cause`` is also
    installed as ``__cause__`` so tracebacks show the original failure.

    Examples:
        >>> try:
        ...     raise LookupError("no row 42")
        ... except LookupError as e:
        ...     error = ResolverError("finder failed", cause=e)
        >>> error.cause
        LookupError('no row 42')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> HydratorError:
        """
        Add context to this error (fluent API).

        Unknown keys go to ``context.metadata``. Keys that are already set are
        left alone, so context added close to the failure wins over context
        added further up the call tree.
        """
        for key, value in kwargs.items():
            if value is None:
                continue
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STRUCTURAL ERRORS (abort the record before dispatch)
# =============================================================================


class StructuralError(HydratorError):
    """The record's declaration makes it impossible to hydrate."""

    default_category = ErrorCategory.STRUCTURE


class InvalidRootKindError(StructuralError):
    """The object passed to ``hydrate`` is not a dataclass or pydantic model instance."""


class EmbeddedFieldError(StructuralError):
    """A directive sits on a pseudo-field with no per-instance storage (``ClassVar``/``InitVar``)."""


AnonymousFieldError = EmbeddedFieldError


class UnsupportedFieldKindError(StructuralError):
    """A directive sits on a field that is not optional, a list or a tuple."""


class PrivateFieldError(StructuralError):
    """The annotated field cannot be assigned (underscore name, frozen field, refused setattr)."""


class ReadOnlyRecordError(PrivateFieldError):
    """The record is frozen, so none of its annotated fields can ever be assigned."""


# =============================================================================
# PER-FIELD ERRORS (collected, never abort siblings)
# =============================================================================


class ResolverError(HydratorError):
    """A method or registered resolver raised; the field is left unset."""

    default_category = ErrorCategory.RESOLVER


class MissingSourceFieldError(ResolverError):
    """The sibling field named by a finder directive does not exist on the record."""


class KindMismatchError(HydratorError):
    """The resolved value's container kind or element type does not match the field."""

    default_category = ErrorCategory.TYPE


class RecursiveHydrationError(HydratorError):
    """A nested record or sequence element failed to hydrate."""

    default_category = ErrorCategory.RECURSION


class HydrationCancelledError(HydratorError):
    """The context was cancelled before the field's resolver could start."""

    default_category = ErrorCategory.CANCELLED


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(HydratorError):
    """Invalid hydrator configuration."""

    default_category = ErrorCategory.CONFIG


class InvalidResolverError(ConfigError):
    """A resolver cannot be called as ``(input)`` or ``(ctx, input)``."""


# =============================================================================
# AGGREGATE
# =============================================================================


class HydrationError(HydratorError):
    """
    Aggregate of every error recorded during one hydration call.

    ``errors`` keeps observation order. ``first`` is the earliest failure,
    ``last`` the most recently observed one. The category mirrors ``last``.
    """

    def __init__(self, errors: Iterable[HydratorError], *, record: str | None = None):
        self.errors: list[HydratorError] = list(errors)
        if not self.errors:
            raise ValueError("HydrationError requires at least one error")
        count = len(self.errors)
        noun = "error" if count == 1 else "errors"
        target = f" {record}" if record else ""
        super().__init__(
            f"Failed to hydrate{target}: {count} {noun}; last: {self.errors[-1].message}",
            category=self.errors[-1].category,
            context=ErrorContext(record=record),
        )

    @property
    def first(self) -> HydratorError:
        return self.errors[0]

    @property
    def last(self) -> HydratorError:
        return self.errors[-1]

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    def leaves(self) -> list[HydratorError]:
        """Flatten nested aggregates and recursive wrappers down to the original failures."""
        out: list[HydratorError] = []
        for error in self.errors:
            cause = error.cause if isinstance(error, RecursiveHydrationError) else None
            if isinstance(cause, HydrationError):
                out.extend(cause.leaves())
            elif isinstance(cause, HydratorError):
                out.append(cause)
            else:
                out.append(error)
        return out

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = [error.to_dict() for error in self.errors]
        return result


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "HydratorError",
    "StructuralError",
    "InvalidRootKindError",
    "EmbeddedFieldError",
    "AnonymousFieldError",
    "UnsupportedFieldKindError",
    "PrivateFieldError",
    "ReadOnlyRecordError",
    "ResolverError",
    "MissingSourceFieldError",
    "KindMismatchError",
    "RecursiveHydrationError",
    "HydrationCancelledError",
    "ConfigError",
    "InvalidResolverError",
    "HydrationError",
]
