"""Field Dispatcher — turns a record's schema into gated resolution tasks.

For each ``FieldPlan`` of a record the dispatcher produces at most one
coroutine that, once scheduled, will:

1. wait for a gate slot,
2. give up with ``HydrationCancelledError`` if the context is cancelled,
3. read its input - the whole record for a ``MethodCall``, the sibling
   field named by the directive for a ``FinderLookup``,
4. call the method or registered resolver and capture either the value or
   the error in a ``FieldResolution``.

Finder plans whose element type has no registered resolver produce no task
at all; the field is left untouched and no error is recorded. The lookup
happens at dispatch time, so resolvers registered between two ``hydrate``
calls are picked up.

The dispatcher never writes to the record; that is the collector's job.
"""

from __future__ import annotations

from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any

from hydrator.core.errors import (
    HydrationCancelledError,
    HydratorError,
    MissingSourceFieldError,
    ResolverError,
)
from hydrator.core.logging import get_logger
from hydrator.core.records import FieldPlan, FinderLookup, MethodCall, RecordSchema
from hydrator.execution.context import HydrationContext
from hydrator.execution.gate import ConcurrencyGate
from hydrator.execution.registry import Resolver, ResolverRegistry

logger = get_logger(__name__)

_MISSING = object()


@dataclass
class FieldResolution:
    """Outcome of one dispatched field: a value or an error, never both."""

    field: str
    value: Any = None
    error: HydratorError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FieldDispatcher:
    """Builds the resolution tasks of one record."""

    def __init__(self, registry: ResolverRegistry, gate: ConcurrencyGate) -> None:
        self.registry = registry
        self.gate = gate

    def dispatch(
        self,
        record: Any,
        schema: RecordSchema,
        ctx: HydrationContext,
        path: str = "",
    ) -> list[Coroutine[Any, Any, FieldResolution]]:
        tasks: list[Coroutine[Any, Any, FieldResolution]] = []
        for plan in schema.fields:
            strategy = plan.strategy
            if isinstance(strategy, MethodCall):
                resolver = Resolver(func=getattr(record, strategy.name), takes_context=strategy.takes_context)
            else:
                resolver, found = self.registry.lookup(strategy.type_key)
                if not found:
                    logger.debug(
                        "field.skipped",
                        record=schema.name,
                        field=plan.name,
                        reason="no resolver",
                        type_key=strategy.type_key,
                    )
                    continue

            logger.debug(
                "field.dispatched",
                record=schema.name,
                field=plan.name,
                strategy="method" if isinstance(strategy, MethodCall) else "finder",
                resolver=resolver.name,
            )
            tasks.append(self._resolve(record, schema, plan, resolver, ctx, path))
        return tasks

    async def _resolve(
        self,
        record: Any,
        schema: RecordSchema,
        plan: FieldPlan,
        resolver: Resolver,
        ctx: HydrationContext,
        path: str,
    ) -> FieldResolution:
        context = {
            "record": schema.name,
            "field": plan.name,
            "directive": plan.directive,
            "path": _join(path, plan.name),
        }
        async with self.gate.slot():
            if ctx.cancelled:
                return FieldResolution(
                    plan.name,
                    error=HydrationCancelledError(
                        f"Skipped {schema.name}.{plan.name}: {ctx.reason()}"
                    ).with_context(**context),
                )

            try:
                result = await resolver.call(ctx, _input(record, schema, plan))
            except HydratorError as exc:
                return FieldResolution(plan.name, error=exc.with_context(**context))
            except Exception as exc:
                return FieldResolution(
                    plan.name,
                    error=ResolverError(
                        f"Resolver {resolver.name} failed for {schema.name}.{plan.name}: {exc}",
                        cause=exc,
                    ).with_context(**context),
                )
        return FieldResolution(plan.name, value=result)


def _input(record: Any, schema: RecordSchema, plan: FieldPlan) -> Any:
    """Methods get the whole record, finders the sibling field's current value."""
    if not isinstance(plan.strategy, FinderLookup):
        return record
    value = getattr(record, plan.strategy.source_field, _MISSING)
    if value is _MISSING:
        raise MissingSourceFieldError(
            f"{schema.name} has no field {plan.strategy.source_field!r} to feed the resolver of {plan.name}"
        )
    return value


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name
