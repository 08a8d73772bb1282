"""Settings for the hydrator.

``HydratorSettings`` is the small configuration surface of the engine: the
annotation keyword that marks a field for hydration and the capacity of the
shared concurrency gate, plus the logging knobs used by the CLI.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** a zero or negative concurrency limit fails at startup
    - **Environment-driven:** ``HYDRATOR_CONCURRENCY_LIMIT=4`` just works
    - **Sensible defaults:** keyword ``"hydrate"``, capacity 10

Examples:
    >>> from hydrator.core.settings import HydratorSettings
    >>> HydratorSettings(concurrency_limit=4).concurrency_limit
    4

Tags:
    settings, configuration, pydantic, environment, hydrator
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ANNOTATION_KEYWORD = "hydrate"
DEFAULT_CONCURRENCY_LIMIT = 10


class HydratorSettings(BaseSettings):
    """Hydrator configuration.

    Fields
    ──────
    concurrency_limit  : Capacity of the gate shared by one Hydrator
    annotation_keyword : Metadata key holding a field's directive
    log_level          : Structlog log level
    json_logs          : JSON (True), console (False) or auto-detect (None)
    """

    model_config = SettingsConfigDict(
        env_prefix="HYDRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Engine ───────────────────────────────────────────────────
    concurrency_limit: int = Field(
        default=DEFAULT_CONCURRENCY_LIMIT,
        ge=1,
        description="Maximum resolver/method calls in flight for one hydrator.",
    )
    annotation_keyword: str = Field(
        default=DEFAULT_ANNOTATION_KEYWORD,
        min_length=1,
        description="Field metadata key that carries the hydration directive.",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None


@lru_cache(maxsize=1)
def get_settings() -> HydratorSettings:
    """Process-wide settings, read once from the environment."""
    return HydratorSettings()
