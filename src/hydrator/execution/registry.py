"""Resolver Registry — injectable type → resolver lookup.

Manifesto:
The engine needs to turn "this field holds a ``Customer``" into "call
``find_customer``". The registry decouples registration (at import time
or startup) from resolution (at hydration time), and supports both a
global default and injectable instances for testing.

ARCHITECTURE
────────────
::

    ResolverRegistry
      ├── .register(sample, resolver)  ─ store resolver under type_key(sample)
      ├── .lookup(key)                 ─ (resolver, found) by key
      ├── .get(sample) / .has(sample)  ─ lookup by class or instance
      ├── .unregister(sample)          ─ drop a binding
      └── .keys()                      ─ all registered keys

    register_resolver(sample)  ─ decorator (uses global registry)
    get_default_registry()     ─ module-level singleton
    reset_default_registry()   ─ clear for testing

Keys are module-qualified class names, so two classes named ``User`` in
different modules never collide. Registering a key again replaces the
previous resolver (last writer wins). All access goes through one lock,
so a lookup never observes a half-written binding even while other
threads register.

Related modules:
    dispatcher.py — FieldDispatcher looks resolvers up here
    engine.py     — Hydrator.register delegates here

Tags:
    hydrator, execution, registry, resolver-registry, lookup
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hydrator.core.errors import InvalidResolverError
from hydrator.core.logging import get_logger
from hydrator.core.records import resolver_arity, type_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolver:
    """A resolver callable plus how to call it.

    ``func`` takes ``(input)`` or, when ``takes_context`` is set,
    ``(ctx, input)``. It may be a coroutine function, a plain function
    (run in a worker thread) or a plain function returning an awaitable.
    """

    func: Callable[..., Any]
    takes_context: bool = False
    description: str | None = None

    @classmethod
    def wrap(cls, func: Callable[..., Any], description: str | None = None) -> Resolver:
        if not callable(func):
            raise InvalidResolverError(f"Resolver {func!r} is not callable")
        takes_context = resolver_arity(func)
        if takes_context is None:
            raise InvalidResolverError(
                f"Resolver {getattr(func, '__qualname__', func)!r} must accept (input) or (ctx, input)"
            )
        return cls(func=func, takes_context=takes_context, description=description)

    @property
    def name(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))

    async def call(self, ctx: Any, value: Any) -> Any:
        args = (ctx, value) if self.takes_context else (value,)
        if inspect.iscoroutinefunction(self.func):
            result = await self.func(*args)
        else:
            result = await asyncio.to_thread(self.func, *args)
        if inspect.isawaitable(result):
            result = await result
        return result


class ResolverRegistry:
    """Injectable resolver registry.

    Example:
        >>> registry = ResolverRegistry()
        >>>
        >>> @register_resolver(Customer, registry=registry)
        >>> async def find_customer(customer_id):
        ...     return await db.customers.get(customer_id)
        >>>
        >>> resolver, found = registry.lookup(type_key(Customer))
    """

    def __init__(self):
        self._resolvers: dict[str, Resolver] = {}
        self._lock = threading.RLock()

    def register(
        self,
        sample: Any,
        resolver: Callable[..., Any],
        description: str | None = None,
    ) -> None:
        """Register a resolver for the type of ``sample``.

        Args:
            sample: The element class, or an instance of it
            resolver: Callable ``(input)`` or ``(ctx, input)`` returning the value
            description: Optional description for listings

        Raises:
            InvalidResolverError: If the resolver cannot be called with one input
        """
        key = type_key(sample)
        wrapped = Resolver.wrap(resolver, description=description or getattr(resolver, "__doc__", None))
        with self._lock:
            replaced = key in self._resolvers
            self._resolvers[key] = wrapped
        logger.debug("resolver.registered", key=key, resolver=wrapped.name, replaced=replaced)

    def lookup(self, key: str | None) -> tuple[Resolver | None, bool]:
        """Look up a resolver by type key.

        Returns:
            ``(resolver, True)`` if registered, ``(None, False)`` otherwise
        """
        if key is None:
            return None, False
        with self._lock:
            resolver = self._resolvers.get(key)
        return resolver, resolver is not None

    def get(self, sample: Any) -> Resolver:
        """Get the resolver for a class or instance.

        Raises:
            KeyError: If no resolver is registered for it
        """
        key = type_key(sample)
        resolver, found = self.lookup(key)
        if not found:
            raise KeyError(f"No resolver registered for {key}. Available: {self.keys() or 'none'}")
        return resolver

    def has(self, sample: Any) -> bool:
        """Check if a resolver exists for a class or instance."""
        return self.lookup(type_key(sample))[1]

    def unregister(self, sample: Any) -> bool:
        """Remove a binding. Returns True if one was removed."""
        key = type_key(sample)
        with self._lock:
            return self._resolvers.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._resolvers)

    def list_with_metadata(self) -> list[dict[str, Any]]:
        """List bindings with resolver names and descriptions."""
        with self._lock:
            items = sorted(self._resolvers.items())
        return [
            {
                "key": key,
                "resolver": resolver.name,
                "takes_context": resolver.takes_context,
                "description": resolver.description,
            }
            for key, resolver in items
        ]

    def clear(self) -> None:
        """Clear all resolvers (for testing)."""
        with self._lock:
            self._resolvers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._resolvers)

    def __contains__(self, sample: Any) -> bool:
        return self.has(sample)


# === GLOBAL DEFAULT REGISTRY ===

_default_registry: ResolverRegistry | None = None
_default_lock = threading.Lock()


def get_default_registry() -> ResolverRegistry:
    """Get the global default registry.

    Creates it lazily on first access.
    """
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = ResolverRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Reset the global registry (for testing)."""
    global _default_registry
    with _default_lock:
        _default_registry = None


# === DECORATOR API ===


def register_resolver(
    sample: Any,
    registry: ResolverRegistry | None = None,
    description: str | None = None,
):
    """Decorator to register a resolver.

    Args:
        sample: Element class (or instance) the resolver produces
        registry: Optional registry (uses global if None)
        description: Optional description

    Example:
        >>> @register_resolver(Customer)
        >>> async def find_customer(customer_id):
        ...     return Customer(id=customer_id)
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        target = registry if registry is not None else get_default_registry()
        target.register(sample, func, description=description)
        return func

    return decorator
