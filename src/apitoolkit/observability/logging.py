"""
apitoolkit.observability.logging

Structured logging for the SDK's own diagnostics.

Responsibilities:
- Optionally configure `structlog` + the `apitoolkit` stdlib logger for hosts that
  do not set up logging themselves.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

SDK_LOGGER = "apitoolkit"


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    """
    Route SDK log events to stdout through structlog.

    Only the `apitoolkit` stdlib logger hierarchy gets a handler; the host's root
    logger is left alone. `structlog.configure` is process-global, though: this
    replaces any structlog configuration the host already has. Hosts that configure
    structlog themselves should leave `setup_logging` off.
    """

    sdk_logger = logging.getLogger(SDK_LOGGER)
    sdk_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(getattr(h, "_apitoolkit", False) for h in sdk_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._apitoolkit = True  # type: ignore[attr-defined]
        sdk_logger.addHandler(handler)
        sdk_logger.propagate = False

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_sdk_fields(service_name),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_sdk_fields(service_name: str):
    from apitoolkit import __version__

    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("sdk_version", __version__)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# `apitoolkit.integrations.apitoolkit_lifespan(..., setup_logging=True)` is the only
# caller; library code just calls `get_logger(__name__)`.
