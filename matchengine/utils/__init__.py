"""Utils package for the match engine."""

from matchengine.utils.errors import (
    ActionError,
    ConcurrencyError,
    ConfigurationError,
    DatabaseError,
    InvalidActionError,
    MatchEngineError,
    MatchingError,
    NotFoundError,
    SelfMatchError,
    ValidationError,
)
from matchengine.utils.logging import configure_logging, get_logger, init_sentry, log_error
from matchengine.utils.cache import delete_cache, get_cache, get_cache_model, set_cache
from matchengine.utils.database import Database, get_session, init_database
from matchengine.utils.pagination import normalize_pagination

__all__ = [
    "ActionError",
    "ConcurrencyError",
    "ConfigurationError",
    "Database",
    "DatabaseError",
    "InvalidActionError",
    "MatchEngineError",
    "MatchingError",
    "NotFoundError",
    "SelfMatchError",
    "ValidationError",
    "configure_logging",
    "delete_cache",
    "get_cache",
    "get_cache_model",
    "get_logger",
    "get_session",
    "init_database",
    "init_sentry",
    "log_error",
    "normalize_pagination",
    "set_cache",
]
