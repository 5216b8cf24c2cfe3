"""Structured logging setup."""
import logging
import os
import sys
from typing import Any, Dict

import structlog


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "research-crew",
) -> None:
    """Configure stdlib logging and structlog once per process."""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
    )


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Copy the active thread id into every entry, when a run bound one."""

    thread_id = structlog.contextvars.get_contextvars().get("thread_id")
    if thread_id and "thread_id" not in event_dict:
        event_dict["thread_id"] = thread_id
    return event_dict


def summarize(value: Any, max_length: int = 200) -> str:
    """Shorten a value for a log field."""
    text = str(value)
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text
