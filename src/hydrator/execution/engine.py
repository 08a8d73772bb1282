"""Hydration Engine — the re-entrant entry point.

Manifesto:
A record declares *where* each of its related values comes from; the
engine does the fetching. One ``Hydrator`` holds the registry, the
annotation keyword and one concurrency gate, and is reused for any number
of calls. Every nested record a resolver returns goes back through the
same engine, the same registry and the same gate.

ARCHITECTURE
────────────
::

    Hydrator.hydrate(record, ctx)
      │
      ├── Validate root     record must be a dataclass / pydantic instance
      │                     and must accept assignments
      ├── Build schema      RecordSchema.for_type (cached); structural
      │                     errors raise here, before any dispatch
      ├── Dispatch fields   FieldDispatcher → one gated task per field
      ├── Join & apply      ResultCollector: kind check, recurse, assign
      │     └── nested records → Hydrator._hydrate_nested (same gate)
      └── Return            HydrationError listing every error, or None

Structural errors of the root record are raised as-is. Everything else,
including structural errors of nested records, is aggregated into one
``HydrationError`` raised at the end of the call.

Usage::

    hydrator = Hydrator(concurrency_limit=4)

    @hydrator.resolver(Customer)
    async def find_customer(customer_id):
        return await repo.customers.get(customer_id)

    await hydrator.hydrate(order)

Related modules:
    dispatcher.py — per-field task construction
    collector.py  — result application and recursion
    gate.py       — the shared concurrency bound

Tags:
    hydrator, engine, recursion, asyncio, fan-out
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from hydrator.core.errors import (
    ConfigError,
    HydrationError,
    HydratorError,
    InvalidRootKindError,
    ReadOnlyRecordError,
)
from hydrator.core.logging import LogContext, get_logger
from hydrator.core.records import RecordSchema, is_record
from hydrator.core.settings import HydratorSettings, get_settings
from hydrator.execution.collector import ResultCollector
from hydrator.execution.context import HydrationContext
from hydrator.execution.dispatcher import FieldDispatcher
from hydrator.execution.gate import ConcurrencyGate
from hydrator.execution.registry import ResolverRegistry, get_default_registry

logger = get_logger(__name__)


class Hydrator:
    """Populates annotated fields of records, recursively.

    Parameters
    ----------
    concurrency_limit : int, optional
        Capacity of the gate shared by every call of this instance.
        Defaults to ``HydratorSettings.concurrency_limit`` (10).
    annotation_keyword : str, optional
        Field metadata key holding the directive. Defaults to
        ``HydratorSettings.annotation_keyword`` (``"hydrate"``).
    registry : ResolverRegistry, optional
        Resolver bindings. Defaults to the process-wide registry.
    settings : HydratorSettings, optional
        Source of the defaults above; ``get_settings()`` when omitted.
    """

    def __init__(
        self,
        *,
        concurrency_limit: int | None = None,
        annotation_keyword: str | None = None,
        registry: ResolverRegistry | None = None,
        settings: HydratorSettings | None = None,
    ) -> None:
        settings = settings if settings is not None else get_settings()
        if concurrency_limit is None:
            concurrency_limit = settings.concurrency_limit
        if annotation_keyword is None:
            annotation_keyword = settings.annotation_keyword
        if not isinstance(annotation_keyword, str) or not annotation_keyword:
            raise ConfigError(f"Annotation keyword must be a non-empty string, got {annotation_keyword!r}")

        self.annotation_keyword = annotation_keyword
        self.registry = registry if registry is not None else get_default_registry()
        self.gate = ConcurrencyGate(concurrency_limit)
        self._dispatcher = FieldDispatcher(self.registry, self.gate)
        self._collector = ResultCollector(self._hydrate_nested)

    @classmethod
    def from_settings(cls, settings: HydratorSettings | None = None, **kwargs: Any) -> Hydrator:
        return cls(settings=settings if settings is not None else get_settings(), **kwargs)

    @property
    def concurrency_limit(self) -> int:
        return self.gate.capacity

    # ── Registration ─────────────────────────────────────────────────

    def register(self, sample: Any, resolver: Callable[..., Any], description: str | None = None) -> None:
        """Bind ``resolver`` to the type of ``sample`` (last registration wins)."""
        self.registry.register(sample, resolver, description=description)

    def resolver(self, sample: Any, description: str | None = None):
        """Decorator form of ``register``."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(sample, func, description=description)
            return func

        return decorator

    def schema(self, record: Any) -> RecordSchema:
        """Resolution schema of a record or record type under this instance's keyword."""
        record_type = record if isinstance(record, type) else type(record)
        return RecordSchema.for_type(record_type, self.annotation_keyword)

    # ── Hydration ────────────────────────────────────────────────────

    async def hydrate(self, record: Any, ctx: HydrationContext | None = None) -> None:
        """Resolve every annotated field of ``record`` and of the records it gains.

        Raises:
            InvalidRootKindError: ``record`` is not a dataclass or pydantic instance
            ReadOnlyRecordError: ``record`` is frozen but has annotated fields
            StructuralError: an annotated field of ``record`` can never be hydrated
            HydrationError: one or more fields (or nested records) failed
        """
        if ctx is None:
            ctx = HydrationContext.background()
        schema = self._validate(record)

        hydration_id = uuid.uuid4().hex[:12]
        started = time.perf_counter()
        async with LogContext(hydration_id=hydration_id):
            logger.debug("hydrate.start", record=schema.name, fields=len(schema.fields))
            errors = await self._hydrate(record, schema, ctx, "", ())
            duration_ms = round((time.perf_counter() - started) * 1000, 2)

            if errors:
                error = HydrationError(errors, record=schema.name)
                logger.warning(
                    "hydrate.failed",
                    record=schema.name,
                    errors=len(errors),
                    last_error=error.last.message,
                    duration_ms=duration_ms,
                )
                raise error

            logger.info(
                "hydrate.complete",
                record=schema.name,
                fields=len(schema.fields),
                peak_in_flight=self.gate.peak,
                duration_ms=duration_ms,
            )

    def hydrate_sync(self, record: Any, ctx: HydrationContext | None = None) -> None:
        """Blocking ``hydrate`` for callers without a running event loop."""
        asyncio.run(self.hydrate(record, ctx))

    async def hydrate_many(self, records: Iterable[Any], ctx: HydrationContext | None = None) -> None:
        """Hydrate several roots concurrently through the same gate.

        Every root is attempted. Failures, root structural errors included,
        are raised together as one ``HydrationError`` whose entries carry
        the failing root's position in ``context.index``.
        """
        if ctx is None:
            ctx = HydrationContext.background()
        roots = list(records)
        outcomes = await asyncio.gather(*(self.hydrate(root, ctx) for root in roots), return_exceptions=True)

        errors: list[HydratorError] = []
        for index, outcome in enumerate(outcomes):
            if outcome is None:
                continue
            if not isinstance(outcome, HydratorError):
                raise outcome
            errors.append(outcome.with_context(index=index))
        if errors:
            raise HydrationError(errors)

    # ── Internals ────────────────────────────────────────────────────

    def _validate(self, record: Any) -> RecordSchema:
        if not is_record(record):
            raise InvalidRootKindError(
                f"Can only hydrate dataclass or pydantic model instances, got {type(record).__qualname__}"
            )
        schema = self.schema(record)
        if schema.frozen and schema.fields:
            raise ReadOnlyRecordError(
                f"{schema.name} is frozen; its annotated fields can never be assigned"
            ).with_context(record=schema.name, field=schema.fields[0].name)
        return schema

    async def _hydrate(
        self,
        record: Any,
        schema: RecordSchema,
        ctx: HydrationContext,
        path: str,
        ancestors: tuple[int, ...],
    ) -> list[HydratorError]:
        tasks = self._dispatcher.dispatch(record, schema, ctx, path)
        resolutions = await asyncio.gather(*tasks)
        return await self._collector.collect(record, schema, resolutions, ctx, path, ancestors + (id(record),))

    async def _hydrate_nested(
        self,
        record: Any,
        ctx: HydrationContext,
        path: str,
        ancestors: tuple[int, ...],
    ) -> None:
        schema = self._validate(record)
        errors = await self._hydrate(record, schema, ctx, path, ancestors)
        if errors:
            raise HydrationError(errors, record=schema.name)

    def __repr__(self) -> str:
        return (
            f"Hydrator(concurrency_limit={self.gate.capacity}, "
            f"annotation_keyword={self.annotation_keyword!r}, resolvers={len(self.registry)})"
        )
