"""Hydrator execution -- registry, gate, dispatch, collection and the engine.

ARCHITECTURE
────────────
::

    Hydrator (engine.py)
      ├── ResolverRegistry  (registry.py)   ─ type key → resolver
      ├── ConcurrencyGate   (gate.py)       ─ shared slot pool
      ├── FieldDispatcher   (dispatcher.py) ─ plan → gated task
      ├── ResultCollector   (collector.py)  ─ check, recurse, assign
      └── HydrationContext  (context.py)    ─ cancellation + values
"""

from hydrator.execution.context import HydrationContext
from hydrator.execution.engine import Hydrator
from hydrator.execution.gate import ConcurrencyGate
from hydrator.execution.registry import (
    Resolver,
    ResolverRegistry,
    get_default_registry,
    register_resolver,
    reset_default_registry,
)

__all__ = [
    "ConcurrencyGate",
    "HydrationContext",
    "Hydrator",
    "Resolver",
    "ResolverRegistry",
    "get_default_registry",
    "register_resolver",
    "reset_default_registry",
]
