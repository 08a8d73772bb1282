"""Cancellation context handed to resolvers.

A resolver or method that declares two parameters is called as
``resolver(ctx, input)``; ``ctx`` is a ``HydrationContext``. It carries a
cancellation flag, an optional deadline and read-only values (request ids,
tenant, a db session), and is shared by every call made for one
``hydrate`` invocation, nested records included.

Cancellation is advisory. The engine checks the context once per field,
right after the field's task gets a gate slot; a cancelled context turns
the field into a ``HydrationCancelledError`` result without calling the
resolver. Resolvers that are already running are never interrupted; long
resolvers should poll ``ctx.cancelled`` or call ``ctx.check()``.

The flag is a ``threading.Event`` because synchronous resolvers run in
worker threads and must be able to observe it.

Example::

    ctx = HydrationContext.background().with_timeout(2.0).with_values(tenant="acme")
    await hydrator.hydrate(order, ctx)

    async def find_customer(ctx, customer_id):
        ctx.check()
        return await repo.get(ctx.value("tenant"), customer_id)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from hydrator.core.errors import HydrationCancelledError


@dataclass
class HydrationContext:
    """Cancellation, deadline and values for one hydration call tree.

    Attributes:
        deadline: Absolute deadline (``time.monotonic`` clock), or None
        parent: Context this one was derived from; its cancellation propagates
        values: Read-only values visible through ``value()``
    """

    deadline: float | None = None
    parent: HydrationContext | None = field(default=None, repr=False)
    values: Mapping[str, Any] = field(default_factory=dict)
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def __post_init__(self) -> None:
        self.values = MappingProxyType(dict(self.values))

    @classmethod
    def background(cls) -> HydrationContext:
        """An empty context that is never cancelled and has no deadline."""
        return cls()

    # ── Derivation ───────────────────────────────────────────────────

    def with_timeout(self, seconds: float) -> HydrationContext:
        """Child context expiring ``seconds`` from now (or earlier, if the parent does)."""
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return HydrationContext(deadline=deadline, parent=self)

    def with_values(self, **values: Any) -> HydrationContext:
        """Child context adding values; lookups fall back to the parent."""
        return HydrationContext(deadline=self.deadline, parent=self, values=values)

    # ── Cancellation ─────────────────────────────────────────────────

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancelled.set()

    def is_expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set() or self.is_expired():
            return True
        return self.parent is not None and self.parent.cancelled

    def remaining(self) -> float | None:
        """Seconds until the deadline (negative once expired), or None."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def reason(self) -> str | None:
        if self.is_expired():
            return "deadline exceeded"
        if self._cancelled.is_set():
            return "cancelled"
        return self.parent.reason() if self.parent is not None else None

    def check(self, operation: str = "hydration") -> None:
        """Raise ``HydrationCancelledError`` if cancelled or past the deadline."""
        if self.cancelled:
            raise HydrationCancelledError(f"{operation} aborted: {self.reason()}")

    # ── Values ───────────────────────────────────────────────────────

    def value(self, key: str, default: Any = None) -> Any:
        ctx: HydrationContext | None = self
        while ctx is not None:
            if key in ctx.values:
                return ctx.values[key]
            ctx = ctx.parent
        return default
