"""Record introspection and resolution schemas.

A *record* is an instance of a ``@dataclass`` class or of a pydantic
``BaseModel``. Fields opt into hydration through metadata stored under the
annotation keyword (``"hydrate"`` by default)::

    @dataclass
    class Order:
        customer_id: int
        customer: Customer | None = field(default=None, metadata={"hydrate": "customer_id"})
        lines: list[LineItem] = field(default_factory=list, metadata={"hydrate": "load_lines"})

        async def load_lines(self, order): ...

    class Invoice(BaseModel):
        order_id: int
        order: Order | None = Field(default=None, json_schema_extra={"hydrate": "order_id"})

``RecordSchema.for_type`` reads those declarations once per (type, keyword)
and turns every annotated field into a ``FieldPlan`` carrying one of two
strategies:

- ``MethodCall`` - the record's class has a method named after the
  directive that accepts ``(input)`` or ``(ctx, input)``; it will be called
  with the whole record.
- ``FinderLookup`` - otherwise the directive names a sibling field whose
  value is handed to the resolver registered for the field's element type.

Structural problems (directive on a ``ClassVar``/``InitVar``, on an
underscore or frozen field, or on a field that is not optional/list/tuple)
raise while the schema is built, so a bad record never has any field
dispatched.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from hydrator.core.errors import (
    EmbeddedFieldError,
    PrivateFieldError,
    UnsupportedFieldKindError,
)

SKIP_DIRECTIVES = frozenset({"", "-"})


class FieldKind(str, Enum):
    """Container kind of a field or of a resolved value."""

    POINTER = "pointer"  # T | None
    SEQUENCE = "sequence"  # list[T]
    ARRAY = "array"  # tuple[T, ...] / tuple[T, T]
    VALUE = "value"  # anything else, never hydrated


@dataclass(frozen=True)
class FieldShape:
    """Kind, element type and (for fixed tuples) length of a field.

    ``optional`` marks a list or tuple declared as ``... | None``; a pointer
    always accepts ``None``.
    """

    kind: FieldKind
    element_type: Any = Any
    length: int | None = None
    optional: bool = False

    @property
    def element_key(self) -> str | None:
        """Registry key of the element type, if it is a concrete class."""
        if _is_concrete_class(self.element_type):
            return type_key(self.element_type)
        return None

    def describe(self) -> str:
        element = getattr(self.element_type, "__qualname__", repr(self.element_type))
        if self.kind is FieldKind.SEQUENCE:
            described = f"list[{element}]"
        elif self.kind is FieldKind.ARRAY:
            described = f"tuple[{element}, ...]" if self.length is None else f"tuple[{element}] * {self.length}"
        else:
            return f"{element} | None"
        return f"{described} | None" if self.optional else described


@dataclass(frozen=True)
class MethodCall:
    name: str
    takes_context: bool


@dataclass(frozen=True)
class FinderLookup:
    type_key: str | None
    source_field: str


@dataclass(frozen=True)
class FieldPlan:
    """One annotated field and how it will be resolved."""

    name: str
    directive: str
    shape: FieldShape
    strategy: MethodCall | FinderLookup


@dataclass(frozen=True)
class RecordSchema:
    """Resolution schema of one record type for one annotation keyword."""

    record_type: type
    keyword: str
    fields: tuple[FieldPlan, ...]
    frozen: bool

    @property
    def name(self) -> str:
        return self.record_type.__qualname__

    @classmethod
    def for_type(cls, record_type: type, keyword: str) -> RecordSchema:
        """Build (or fetch the cached) schema; raises on structural violations."""
        return _build_schema(record_type, keyword)


# ── Type helpers ─────────────────────────────────────────────────────────


def type_key(sample: Any) -> str:
    """Type identity used by the registry: module-qualified class name.

    Accepts a class or an instance of it.
    """
    cls = sample if isinstance(sample, type) else type(sample)
    return f"{cls.__module__}.{cls.__qualname__}"


def is_record(value: Any) -> bool:
    """True for dataclass instances and pydantic model instances."""
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_frozen(value: Any) -> bool:
    """True if assignments to the record (or record type) are refused."""
    cls = value if isinstance(value, type) else type(value)
    if issubclass(cls, BaseModel):
        return bool(cls.model_config.get("frozen", False))
    params = getattr(cls, "__dataclass_params__", None)
    return bool(params is not None and params.frozen)


def kind_of(value: Any) -> FieldKind:
    """Container kind of a resolved value; ``None`` counts as an empty pointer."""
    if isinstance(value, list):
        return FieldKind.SEQUENCE
    if isinstance(value, tuple):
        return FieldKind.ARRAY
    return FieldKind.POINTER


def _is_concrete_class(tp: Any) -> bool:
    return isinstance(tp, type) and get_origin(tp) is None and tp is not Any


def _strip_annotated(tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return tp


def _container_shape(tp: Any) -> FieldShape | None:
    origin = get_origin(tp) or tp
    args = get_args(tp)
    if origin is list:
        return FieldShape(FieldKind.SEQUENCE, _strip_annotated(args[0]) if args else Any)
    if origin is tuple:
        if not args:
            return FieldShape(FieldKind.ARRAY, Any)
        if len(args) == 2 and args[1] is Ellipsis:
            return FieldShape(FieldKind.ARRAY, _strip_annotated(args[0]))
        first = args[0]
        element = _strip_annotated(first) if all(arg == first for arg in args) else Any
        return FieldShape(FieldKind.ARRAY, element, length=len(args))
    return None


def classify(annotation: Any) -> FieldShape:
    """Map a field annotation onto a ``FieldShape``.

    ``T | None`` is a pointer to ``T``, ``list[T]`` a sequence, ``tuple[T, ...]``
    an array; an optional list or tuple keeps its container kind. Everything
    else is ``VALUE``.
    """
    tp = _strip_annotated(annotation)
    if get_origin(tp) in (Union, types.UnionType):
        members = get_args(tp)
        present = [member for member in members if member is not type(None)]
        if len(present) != 1 or len(present) == len(members):
            return FieldShape(FieldKind.VALUE)
        inner = _strip_annotated(present[0])
        container = _container_shape(inner)
        if container is not None:
            return dataclasses.replace(container, optional=True)
        return FieldShape(FieldKind.POINTER, inner)
    return _container_shape(tp) or FieldShape(FieldKind.VALUE)


def _matches(element_type: Any, value: Any) -> bool:
    if not _is_concrete_class(element_type):
        return True
    if getattr(element_type, "_is_protocol", False) and not getattr(element_type, "_is_runtime_protocol", False):
        # plain Protocols refuse isinstance
        return True
    return isinstance(value, element_type)


def shape_mismatch(shape: FieldShape, value: Any) -> str | None:
    """Describe why ``value`` cannot be assigned to a field of ``shape``, or None."""
    if value is None and shape.optional:
        return None
    actual = kind_of(value)
    if actual is not shape.kind:
        return f"expected {shape.kind.value}, got {actual.value} ({type(value).__name__})"

    if shape.kind is FieldKind.POINTER:
        if value is not None and not _matches(shape.element_type, value):
            return f"expected {shape.describe()}, got {type(value).__qualname__}"
        return None

    if shape.length is not None and len(value) != shape.length:
        return f"expected {shape.length} elements, got {len(value)}"
    for index, item in enumerate(value):
        if not _matches(shape.element_type, item):
            return f"element {index} is {type(item).__qualname__}, expected {shape.describe()}"
    return None


def resolver_arity(func: Any, skip: int = 0) -> bool | None:
    """Inspect a resolver's signature.

    Returns True if it takes ``(ctx, input)``, False if it takes ``(input)``,
    None if it can be called neither way. ``skip`` drops leading parameters
    (``self``/``cls`` of an unbound method).
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # builtins without introspectable signatures
        return False

    positional: list[inspect.Parameter] = []
    variadic = False
    for parameter in signature.parameters.values():
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional.append(parameter)
        elif parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            variadic = True
        elif parameter.kind is inspect.Parameter.KEYWORD_ONLY and parameter.default is parameter.empty:
            return None

    positional = positional[skip:]
    required = sum(1 for parameter in positional if parameter.default is parameter.empty)
    if required > 2:
        return None
    if required == 2:
        return True
    if positional or variadic:
        return False
    return None


# ── Schema construction ──────────────────────────────────────────────────


@dataclass(frozen=True)
class _Declared:
    name: str
    directive: str | None
    annotation: Any
    embedded: bool
    frozen_field: bool = False


def _directive(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _model_fields(record_type: type[BaseModel], keyword: str) -> list[_Declared]:
    declared = []
    for name, info in record_type.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        declared.append(
            _Declared(
                name=name,
                directive=_directive(extra.get(keyword)),
                annotation=info.annotation,
                embedded=False,
                frozen_field=bool(info.frozen),
            )
        )
    return declared


def _dataclass_fields(record_type: type, keyword: str) -> list[_Declared]:
    try:
        hints = get_type_hints(record_type, include_extras=True)
    except (NameError, TypeError):
        hints = {}

    declared = []
    for f in record_type.__dataclass_fields__.values():
        hint = hints.get(f.name, f.type)
        embedded = hint is ClassVar or get_origin(hint) is ClassVar or isinstance(hint, dataclasses.InitVar)
        declared.append(
            _Declared(
                name=f.name,
                directive=_directive(f.metadata.get(keyword)),
                annotation=hint,
                embedded=embedded,
            )
        )
    return declared


def _method_strategy(record_type: type, name: str) -> MethodCall | None:
    if not name.isidentifier():
        return None
    raw = inspect.getattr_static(record_type, name, None)
    if isinstance(raw, staticmethod):
        func, skip = raw.__func__, 0
    elif isinstance(raw, classmethod):
        func, skip = raw.__func__, 1
    elif inspect.isfunction(raw):
        func, skip = raw, 1
    else:
        return None

    takes_context = resolver_arity(func, skip=skip)
    if takes_context is None:
        return None
    return MethodCall(name=name, takes_context=takes_context)


@lru_cache(maxsize=512)
def _build_schema(record_type: type, keyword: str) -> RecordSchema:
    if issubclass(record_type, BaseModel):
        declared = _model_fields(record_type, keyword)
    else:
        declared = _dataclass_fields(record_type, keyword)

    plans: list[FieldPlan] = []
    for entry in declared:
        directive = entry.directive
        if directive is None or directive in SKIP_DIRECTIVES:
            continue

        context = {"record": record_type.__qualname__, "field": entry.name, "directive": directive}
        if entry.embedded:
            raise EmbeddedFieldError(
                f"Attempted to hydrate embedded field {entry.name} on {record_type.__qualname__}"
            ).with_context(**context)
        if entry.name.startswith("_"):
            raise PrivateFieldError(
                f"Attempted to hydrate private field {entry.name} on {record_type.__qualname__}"
            ).with_context(**context)
        if entry.frozen_field:
            raise PrivateFieldError(
                f"Attempted to hydrate frozen field {entry.name} on {record_type.__qualname__}"
            ).with_context(**context)

        if isinstance(entry.annotation, str):
            raise UnsupportedFieldKindError(
                f"Cannot resolve annotation {entry.annotation!r} of field {entry.name}"
            ).with_context(**context)
        shape = classify(entry.annotation)
        if shape.kind is FieldKind.VALUE:
            raise UnsupportedFieldKindError(
                f"Attempted to hydrate {entry.annotation!r} field {entry.name}; "
                "only optional, list and tuple fields can be hydrated"
            ).with_context(**context)

        strategy: MethodCall | FinderLookup | None = _method_strategy(record_type, directive)
        if strategy is None:
            strategy = FinderLookup(type_key=shape.element_key, source_field=directive)
        plans.append(FieldPlan(name=entry.name, directive=directive, shape=shape, strategy=strategy))

    return RecordSchema(
        record_type=record_type,
        keyword=keyword,
        fields=tuple(plans),
        frozen=is_frozen(record_type),
    )
