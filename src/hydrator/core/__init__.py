"""Hydrator core -- errors, logging, settings and record introspection.

Architecture::

    errors.py      HydratorError hierarchy, ErrorContext, HydrationError aggregate
    logging.py     structlog configuration, get_logger, LogContext
    settings.py    HydratorSettings (pydantic-settings, HYDRATOR_ env prefix)
    records.py     RecordSchema: which fields to hydrate and how

Nothing here schedules work; see ``hydrator.execution``.
"""
