"""
structlog setup for applications embedding SovereignAuth.

The library itself only calls ``structlog.get_logger()``; hosts that want
timestamps, levels and JSON lines call ``configure_logging`` once at
startup.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List

import structlog

# Event keys that may carry secrets; always truncated before rendering.
_SECRET_KEYS = ("nonce", "session", "session_id", "signature")


def truncate_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]  # noqa: ARG001
) -> Dict[str, Any]:
    """Processor that shortens secret-bearing values to an 8-char prefix."""
    for key in _SECRET_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > 8:
            event_dict[key] = value[:8]
    return event_dict


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        json: Render JSON lines instead of the console format
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        truncate_secrets,
    ]
    if json:
        processors.extend(
            [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
