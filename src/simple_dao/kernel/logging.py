"""
Structured logging for Simple DAO

structlog on top of stdlib logging, with a per-context correlation id so
that every line emitted while handling one request (a vote, a creation,
a distribution) can be tied together.
"""

import contextvars
import logging
import os
import secrets
import sys
import time
from typing import Any

import structlog

from simple_dao.kernel.errors import DAOError

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Identities and amounts stay out of operation logs; the event log is the
# audited record for those.
REDACTED_FIELDS = {
    "caller",
    "recipient",
    "voter",
    "amount",
    "requested_amount",
    "password",
    "token",
    "secret",
    "api_key",
}

REDACTED = "***REDACTED***"


def generate_correlation_id() -> str:
    """22-character URL-safe id with 128 bits of entropy"""
    return secrets.token_urlsafe(16)


def get_correlation_id() -> str:
    """Get the current correlation ID, or generate a new one if not set."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    correlation_id_var.set(correlation_id)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor adding the correlation id"""
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def is_production() -> bool:
    """True when ENVIRONMENT=production"""
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


def configure_logging(
    *,
    json_output: bool | None = None,
    log_level: str | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_output: JSON lines when True, coloured console output when False.
            Defaults to JSON in production (see is_production()).
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to the
            LOG_LEVEL environment variable, then INFO.
    """
    if json_output is None:
        json_output = is_production()
    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )
    logging.getLogger().setLevel(level)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module (typically __name__)"""
    return structlog.get_logger(name)


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Replace sensitive values in a log context

    Example:
        >>> redact_context({"caller": "alice", "proposal_id": 3})
        {"caller": "***REDACTED***", "proposal_id": 3}
    """
    return {k: REDACTED if k in REDACTED_FIELDS else v for k, v in context.items()}


class LogOperation:
    """
    Context manager logging an operation's start, outcome and duration

    Domain errors (DAOError) are expected outcomes for callers and are
    logged at warning level with their code; anything else is an error
    with a stack trace outside production.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.context = redact_context(context)
        self.start_time: float = 0.0

    def __enter__(self) -> "LogOperation":
        self.start_time = time.perf_counter()
        self.logger.debug(
            f"{self.operation} started",
            operation=self.operation,
            **self.context,
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is None:
            self.logger.info(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
                **self.context,
            )
        elif isinstance(exc_val, DAOError):
            self.logger.warning(
                f"{self.operation} rejected",
                operation=self.operation,
                duration_ms=duration_ms,
                error_code=exc_val.code,
                error=str(exc_val),
                **self.context,
            )
        else:
            self.logger.error(
                f"{self.operation} failed",
                operation=self.operation,
                duration_ms=duration_ms,
                exc_info=not is_production(),
                **self.context,
            )
