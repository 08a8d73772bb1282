"""Result Collector — joins one record's resolutions and applies them.

The collector is the only code that writes to a record. Given the
``FieldResolution`` of every dispatched field it:

1. records resolver errors (the field stays unset),
2. checks each value against its field's shape - container kind, element
   class, fixed tuple length - and records a ``KindMismatchError`` on
   mismatch,
3. hydrates every nested record concurrently through the engine: a record
   returned for an optional field, and every record element of a returned
   list or tuple. Failures come back as ``RecursiveHydrationError``,
4. assigns the surviving values.

A value for an optional field whose nested hydration failed is not
attached. A list or tuple is attached even when some of its elements
failed; the failures are still reported.

Errors are returned in the order they were observed; the engine turns the
list into one ``HydrationError``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from hydrator.core.errors import (
    HydratorError,
    KindMismatchError,
    PrivateFieldError,
    RecursiveHydrationError,
)
from hydrator.core.logging import get_logger
from hydrator.core.records import FieldKind, FieldPlan, RecordSchema, is_record, shape_mismatch
from hydrator.execution.context import HydrationContext
from hydrator.execution.dispatcher import FieldResolution

logger = get_logger(__name__)

NestedHydrate = Callable[[Any, HydrationContext, str, tuple[int, ...]], Awaitable[None]]


@dataclass
class _Accepted:
    plan: FieldPlan
    value: Any
    detached: bool = False


class ResultCollector:
    """Applies resolutions to a record and recurses into nested records.

    ``hydrate_nested(record, ctx, path, ancestors)`` is the engine's
    re-entrant entry point; it raises a ``HydratorError`` on failure.
    """

    def __init__(self, hydrate_nested: NestedHydrate) -> None:
        self._hydrate_nested = hydrate_nested

    async def collect(
        self,
        record: Any,
        schema: RecordSchema,
        resolutions: Sequence[FieldResolution],
        ctx: HydrationContext,
        path: str = "",
        ancestors: tuple[int, ...] = (),
    ) -> list[HydratorError]:
        errors: list[HydratorError] = []
        plans = {plan.name: plan for plan in schema.fields}
        accepted: list[_Accepted] = []

        for resolution in resolutions:
            plan = plans[resolution.field]
            if resolution.error is not None:
                logger.warning(
                    "field.failed",
                    record=schema.name,
                    field=plan.name,
                    path=_join(path, plan.name),
                    error=resolution.error.message,
                )
                errors.append(resolution.error)
                continue

            reason = shape_mismatch(plan.shape, resolution.value)
            if reason is not None:
                errors.append(
                    KindMismatchError(
                        f"Attempted to hydrate {schema.name}.{plan.name} ({plan.shape.describe()}) "
                        f"with {type(resolution.value).__qualname__}: {reason}"
                    ).with_context(
                        record=schema.name,
                        field=plan.name,
                        directive=plan.directive,
                        path=_join(path, plan.name),
                    )
                )
                continue
            accepted.append(_Accepted(plan, resolution.value))

        errors.extend(await self._recurse(schema, accepted, ctx, path, ancestors))

        for item in accepted:
            if item.detached:
                continue
            error = _assign(record, schema, item.plan, item.value, path)
            if error is not None:
                errors.append(error)
            else:
                logger.debug("field.applied", record=schema.name, field=item.plan.name)
        return errors

    async def _recurse(
        self,
        schema: RecordSchema,
        accepted: list[_Accepted],
        ctx: HydrationContext,
        path: str,
        ancestors: tuple[int, ...],
    ) -> list[HydratorError]:
        jobs: list[Awaitable[None]] = []
        owners: list[tuple[_Accepted, int | None, str]] = []
        for item in accepted:
            for index, nested in _nested_records(item.plan, item.value):
                nested_path = _join(path, item.plan.name) + ("" if index is None else f"[{index}]")
                if id(nested) in ancestors:
                    logger.debug("field.cycle", record=schema.name, field=item.plan.name, path=nested_path)
                    continue
                jobs.append(self._hydrate_nested(nested, ctx, nested_path, ancestors))
                owners.append((item, index, nested_path))

        if not jobs:
            return []

        errors: list[HydratorError] = []
        outcomes = await asyncio.gather(*jobs, return_exceptions=True)
        for (item, index, nested_path), outcome in zip(owners, outcomes):
            if outcome is None:
                continue
            if not isinstance(outcome, HydratorError):
                raise outcome
            where = item.plan.name if index is None else f"{item.plan.name}[{index}]"
            errors.append(
                RecursiveHydrationError(
                    f"Nested hydration of {schema.name}.{where} failed: {outcome.message}",
                    cause=outcome,
                ).with_context(
                    record=schema.name,
                    field=item.plan.name,
                    directive=item.plan.directive,
                    path=nested_path,
                    index=index,
                )
            )
            if index is None:
                item.detached = True
        return errors


def _nested_records(plan: FieldPlan, value: Any) -> Iterator[tuple[int | None, Any]]:
    if value is None:
        return
    if plan.shape.kind is FieldKind.POINTER:
        if is_record(value):
            yield None, value
        return
    for index, element in enumerate(value):
        if is_record(element):
            yield index, element


def _assign(record: Any, schema: RecordSchema, plan: FieldPlan, value: Any, path: str) -> HydratorError | None:
    context = {"record": schema.name, "field": plan.name, "directive": plan.directive, "path": _join(path, plan.name)}
    try:
        setattr(record, plan.name, value)
    except (AttributeError, TypeError) as exc:
        return PrivateFieldError(
            f"Attempted to hydrate a field {schema.name} refuses to set: {plan.name}",
            cause=exc,
        ).with_context(**context)
    except ValueError as exc:
        # pydantic validate_assignment
        return KindMismatchError(
            f"{schema.name}.{plan.name} rejected the resolved value: {exc}",
            cause=exc,
        ).with_context(**context)
    return None


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name
