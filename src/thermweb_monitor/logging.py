"""Structured logging for Thermweb Monitor.

Everything logs through structlog with snake_case event names
(``health_check_started``, ``alert_raised``, ``proxy_cache_hit``). Portal
session cookies and Pushover tokens never reach the output: any event field
whose name looks like a credential is masked before rendering.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, List, Literal, MutableMapping

import structlog

# Field names containing any of these are masked
SECRET_FIELD_MARKERS = ("session", "token", "password", "secret", "cookie")

# Per-request and per-job chatter from these stays at WARNING and above
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking credential-like fields."""
    for field_name, value in event_dict.items():
        if field_name == "event" or value in (None, ""):
            continue
        lowered = field_name.lower()
        if any(marker in lowered for marker in SECRET_FIELD_MARKERS):
            event_dict[field_name] = "***"
    return event_dict


def configure_logging(
    log_format: Literal["json", "text"] = "json",
    log_level: str = "INFO",
) -> None:
    """Configure structlog and the stdlib loggers uvicorn and APScheduler use.

    Args:
        log_format: "json" for containers, "text" for a terminal.
        log_level: DEBUG, INFO, WARNING or ERROR.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: List[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_format == "json":
        renderer: List[structlog.typing.Processor] = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        renderer = [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=level,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(**initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Logger bound to ``initial_values`` (e.g. ``mode="checks_only"``)."""
    return structlog.get_logger(**initial_values)
