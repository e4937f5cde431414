"""Structured logging and tracing setup for the match engine."""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from structlog.types import EventDict, Processor, WrappedLogger

from matchengine.config import settings


def _add_app_name(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", settings.APP_NAME)
    return event_dict


def build_processors(json_logs: bool) -> List[Processor]:
    """
    Build the structlog processor chain.

    Args:
        json_logs (bool): Render JSON lines instead of the console format.

    Returns:
        List[Processor]: Processors ending with the renderer.
    """
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_app_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Route standard logging through structlog.

    Both arguments default to the settings: `LOG_LEVEL` for the level, and
    JSON output everywhere except the development environment.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    if json_logs is None:
        json_logs = settings.ENVIRONMENT.lower() != "development"

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
        stream=sys.stdout,
        force=True,
    )

    structlog.configure(
        processors=build_processors(json_logs),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def init_sentry() -> bool:
    """
    Initialize Sentry tracing if a DSN is configured.

    Returns:
        bool: True if the SDK was initialized.
    """
    if not settings.SENTRY_DSN:
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=1.0 if settings.ENVIRONMENT == "development" else 0.1,
        integrations=[
            SqlalchemyIntegration(),
            RedisIntegration(),
            AsyncioIntegration(),
        ],
    )
    get_logger(__name__).info("Sentry initialized", environment=settings.ENVIRONMENT)
    return True


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger for `name` with `initial_values` bound."""
    return structlog.get_logger(name).bind(**initial_values)  # type: ignore


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """
    Bind values to every log line emitted inside the block.

    The binding lives in a context variable, so it follows the task into
    `asyncio.to_thread` workers and is removed on exit.
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    message: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an exception with its type, message and, for engine errors, the
    status code and details it carries.

    `extra` is copied, never modified.
    """
    context: Dict[str, Any] = dict(extra or {})
    context["error_type"] = type(error).__name__
    context["error_message"] = str(error)

    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        context["status_code"] = status_code
    details = getattr(error, "details", None)
    if details:
        context["error_details"] = details

    logger.error(message or "An error occurred", **context, exc_info=error)
