"""
Hydrator - annotation-driven, concurrent hydration of nested records.

A record (dataclass or pydantic model) marks the fields it wants filled in
with a directive stored under the ``"hydrate"`` metadata key. The directive
either names a method of the record, or names a sibling field whose value is
handed to a resolver registered for the field's element type. Resolved
records are themselves hydrated, recursively, under one shared concurrency
bound.

Example:
    >>> from hydrator import Hydrator
    >>> hydrator = Hydrator(concurrency_limit=4)
    >>> hydrator.register(Customer, find_customer)
    >>> await hydrator.hydrate(order)
"""

__version__ = "0.1.0"

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
from hydrator.core.records import FieldKind, RecordSchema, type_key
from hydrator.core.settings import HydratorSettings, get_settings
from hydrator.execution.context import HydrationContext
from hydrator.execution.engine import Hydrator
from hydrator.execution.gate import ConcurrencyGate
from hydrator.execution.registry import (
    ResolverRegistry,
    get_default_registry,
    register_resolver,
    reset_default_registry,
)

__all__ = [
    "__version__",
    # Engine
    "Hydrator",
    "HydrationContext",
    "ConcurrencyGate",
    # Registry
    "ResolverRegistry",
    "get_default_registry",
    "register_resolver",
    "reset_default_registry",
    "type_key",
    # Schema
    "FieldKind",
    "RecordSchema",
    # Settings
    "HydratorSettings",
    "get_settings",
    # Errors
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
