"""Per-connection correlation IDs carried through log records via contextvars."""

import contextvars
import logging
import uuid
from typing import Any, MutableMapping, Optional

ROOT_LOGGER_NAME = "tinyhttpd"

_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id", default=None
)


def generate_correlation_id() -> str:
    """Generate a short random ID identifying one connection in the logs."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Retrieve the current correlation ID from context."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Store a correlation ID in the current context."""
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Remove the correlation ID from the current context."""
    _correlation_id_var.set(None)


def component_name(logger_name: str) -> str:
    """Strip the project prefix from a logger name."""
    prefix = f"{ROOT_LOGGER_NAME}."
    if logger_name.startswith(prefix):
        return logger_name[len(prefix) :]
    return logger_name


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation ID and component into log records."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        else:
            kwargs["extra"] = dict(kwargs["extra"])

        correlation_id = get_correlation_id()
        kwargs["extra"]["correlation_id"] = (
            correlation_id if correlation_id is not None else "-"
        )
        kwargs["extra"]["component"] = component_name(self.logger.name)
        return msg, kwargs
