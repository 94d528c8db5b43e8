"""Structured logging: structlog over stdlib logging, one JSON object per line."""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog

from .config import settings


def configure_logging(level: Optional[str] = None) -> None:
    """Render structlog events as JSON through the stdlib root logger.

    ``level`` overrides ``settings.LOG_LEVEL``; unknown names mean INFO.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger().setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)


def _elapsed_ms(context: Dict[str, Any]) -> int:
    return int((time.monotonic() - context["started"]) * 1000)


class LoggerMixin:
    """Named logger plus timed-operation records for pipeline components.

    Subclasses override :meth:`log_context` to stamp their own state (loop
    state, class count, endpoint) onto every operation record they emit.
    """

    @property
    def logger(self) -> structlog.BoundLogger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger

    def log_context(self) -> Dict[str, Any]:
        return {}

    def _fields(self, context: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
        fields = {**self.log_context(), **context["fields"], **extra}
        if "started" in context:
            fields["duration_ms"] = _elapsed_ms(context)
        return fields

    def log_start(self, operation: str, **fields: Any) -> Dict[str, Any]:
        """Emit ``<operation> started`` and return the context the other helpers take."""
        context = {"operation": operation, "started": time.monotonic(), "fields": fields}
        self.logger.info(f"{operation} started", **self.log_context(), **fields)
        return context

    def log_success(self, context: Dict[str, Any], **fields: Any) -> None:
        self.logger.info(f"{context['operation']} completed", **self._fields(context, fields))

    def log_error(self, context: Dict[str, Any], error: Exception, **fields: Any) -> None:
        self.logger.error(
            f"{context['operation']} failed",
            error=str(error),
            error_type=type(error).__name__,
            **self._fields(context, fields),
        )

    @contextmanager
    def timed_operation(self, operation: str, **fields: Any) -> Iterator[Dict[str, Any]]:
        """Wrap a block in start/completed/failed records; exceptions propagate."""
        context = self.log_start(operation, **fields)
        try:
            yield context
        except BaseException as e:
            self.log_error(context, e)
            raise
        self.log_success(context)
