"""
Structured Logging
==================
JSON logging for services embedding the authentication core.

Modules log through ``structlog.get_logger(__name__)``; ``setup_logging``
routes those events into the stdlib root logger so a single JSON handler
(compatible with ELK, Datadog, CloudWatch) renders everything.

Usage:
    from otpauth_core.logging import setup_logging, request_id_var

    setup_logging(service_name="accounts-api")
    request_id_var.set(incoming_request_id)
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

import structlog

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
service_name_var: ContextVar[str] = ContextVar("service_name", default="unknown")


# Event fields promoted next to the envelope; everything else goes under "context"
PROMOTED_FIELDS = ("account_id", "purpose", "scope")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    The envelope (time, level, service, request id, event) comes first,
    then the account the event concerns, then the remaining structlog
    key-values under ``context``. Stack traces are flattened to a string.
    """

    def format(self, record: logging.LogRecord) -> str:
        fields: Dict[str, Any] = dict(getattr(record, "event_fields", None) or {})
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "service": service_name_var.get(),
            "event": record.getMessage(),
            "logger": record.name,
        }

        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id

        for name in PROMOTED_FIELDS:
            if fields.get(name) is not None:
                entry[name] = fields.pop(name)
        if fields:
            entry["context"] = fields

        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = {
                "type": record.exc_info[0].__name__,
                "detail": str(record.exc_info[1]),
                "stack": self.formatException(record.exc_info),
            }

        entry["at"] = f"{record.module}:{record.funcName}:{record.lineno}"
        return json.dumps(entry, default=str)


def _to_stdlib_kwargs(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Tuple[Tuple[Any, ...], Dict[str, Any]]:
    """Final structlog processor: event name becomes the message, the rest event_fields."""
    event = event_dict.pop("event", "")
    exc_info = event_dict.pop("exc_info", None)
    kwargs: Dict[str, Any] = {"extra": {"event_fields": event_dict}}
    if exc_info:
        kwargs["exc_info"] = exc_info
    return (event,), kwargs


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure stdlib and structlog logging for a service.

    Args:
        service_name: Name of the service (e.g., "accounts-api")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)

    Returns:
        Configured root logger
    """
    service_name_var.set(service_name)
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        ))
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            _to_stdlib_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info(
        "Logging configured", service=service_name, json_output=json_output
    )
    return root_logger


def mask_email(email: str) -> str:
    """Mask an email for logs: ``alice@example.com`` -> ``a***@example.com``."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"
