"""
Structured logging for adtrack.

Sets up structlog on top of stdlib logging:
- JSON output in production, coloured console output in development
- redaction of secrets and tokens
- IP hashing for production logs
- per-event sampling for the high-volume tracking and stats paths

``setup_logging()`` is called once from the app factory with the loaded
``LoggingSettings``; modules only ever call ``get_logger(__name__)``.
"""

from __future__ import annotations

import hashlib
import logging
import random
import sys
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

from config import LoggingSettings

# Overwritten by setup_logging(); defaults keep tests and scripts quiet-safe.
SAMPLING_RATES: dict[str, float] = {
    "visit_recorded": 0.05,
    "stats_query": 0.20,
}

_hash_ips = False

REDACTED_FIELDS = {
    "password",
    "token",
    "authorization",
    "cookie",
    "access_token",
    "secret",
}


def get_logger(name: str) -> BoundLogger:
    """Return a structlog logger bound to *name*.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("ad_created", owner_id=2, ad_seq=1)
    """
    return structlog.get_logger(name)


def should_sample(event_type: str) -> bool:
    """Decide whether a high-frequency event should be logged."""
    sample_rate = SAMPLING_RATES.get(event_type, 1.0)
    if sample_rate >= 1.0:
        return True
    if sample_rate <= 0.0:
        return False
    return random.random() < sample_rate


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """SHA-256 prefix of the address in production, the raw value otherwise."""
    if ip_address is None:
        return None
    if _hash_ips and ip_address:
        return hashlib.sha256(ip_address.encode()).hexdigest()[:16]
    return ip_address


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in ("level", "event", "timestamp", "logger"):
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(
            sensitive in lowered for sensitive in ("password", "token", "secret")
        ):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str) -> None:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, pad_event=15, sort_keys=False
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # pymongo is chatty at DEBUG (pool, topology, server selection)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_logging(settings: LoggingSettings, *, production: bool = False) -> None:
    """Initialise the logging system. Call once at startup."""
    global _hash_ips

    configure_stdlib_logging(settings.log_level)
    configure_structlog(settings.log_format)

    SAMPLING_RATES["visit_recorded"] = settings.sample_rate_track
    SAMPLING_RATES["stats_query"] = settings.sample_rate_stats
    _hash_ips = production

    get_logger(__name__).info(
        "logging_initialized",
        log_level=settings.log_level,
        log_format=settings.log_format,
        hash_ips=production,
    )
