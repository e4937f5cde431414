"""Redis cache utilities for the match engine.

Caching is best-effort: when Redis is not configured or unreachable every
helper degrades to a no-op and callers fall back to the repository.
"""

from typing import Optional, Type, TypeVar, Union

import pydantic
import redis
import sentry_sdk
from pydantic import BaseModel

from matchengine.config import settings
from matchengine.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class RedisClient:
    """
    Singleton class for Redis client.

    Manages the Redis connection pool and provides a unified access point
    for caching operations.
    """

    _instance: Optional[redis.Redis] = None
    _failed: bool = False

    @classmethod
    def get_client(cls) -> Optional[redis.Redis]:
        """
        Get or create a Redis client instance.

        Returns:
            Optional[redis.Redis]: Redis client instance or None if unavailable.
        """
        if cls._failed:
            return None

        if cls._instance is None:
            if not settings.REDIS_URL:
                logger.debug("No Redis configuration found, caching will be disabled")
                cls._failed = True
                return None
            try:
                pool = redis.ConnectionPool.from_url(
                    settings.REDIS_URL,
                    max_connections=10,
                    decode_responses=True,
                )
                cls._instance = redis.Redis(connection_pool=pool)
                logger.info("Redis client initialized", url=settings.REDIS_URL)
            except (redis.RedisError, ValueError) as e:
                logger.warning("Failed to initialize Redis client, caching will be disabled", error=str(e))
                cls._failed = True
                return None
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client so the next call re-reads settings."""
        cls._instance = None
        cls._failed = False


def set_cache(key: str, value: Union[str, BaseModel], expiration: int = 3600) -> None:
    """
    Set a value in the Redis cache.

    Args:
        key (str): Cache key.
        value (Union[str, BaseModel]): Value to cache; models are stored as JSON.
        expiration (int): Cache expiration time in seconds (default: 3600).
    """
    with sentry_sdk.start_span(op="cache.set", name=key) as span:
        span.set_data("expiration", expiration)

        client = RedisClient.get_client()
        if client is None:
            span.set_data("status", "disabled")
            return

        cache_value = value.model_dump_json() if isinstance(value, BaseModel) else str(value)

        if expiration <= 0:
            logger.warning("Cache set without expiration, forcing default 1h", key=key)
            expiration = 3600

        try:
            client.set(key, cache_value, ex=expiration)
            logger.debug("Cache set", key=key, expiration=expiration)
            span.set_data("status", "success")
        except redis.RedisError as e:
            logger.warning("Failed to set cache, continuing without cache", key=key, error=str(e))
            span.set_status("internal_error")


def get_cache(key: str) -> Optional[str]:
    """
    Get a string value from the Redis cache.

    Args:
        key (str): Cache key.

    Returns:
        Optional[str]: Cached value or None if not found or Redis is not available.
    """
    with sentry_sdk.start_span(op="cache.get", name=key) as span:
        client = RedisClient.get_client()
        if client is None:
            span.set_data("status", "disabled")
            return None

        try:
            value: Optional[str] = client.get(key)  # type: ignore
        except redis.RedisError as e:
            logger.warning("Failed to get cache", key=key, error=str(e))
            span.set_status("internal_error")
            return None

        span.set_data("status", "hit" if value else "miss")
        return value or None


def get_cache_model(key: str, model_class: Type[T]) -> Optional[T]:
    """
    Get a Pydantic model from the Redis cache.

    Args:
        key (str): Cache key.
        model_class (Type[T]): Pydantic model class to validate against.

    Returns:
        Optional[T]: Model instance, or None on a miss or an unreadable entry.
    """
    value = get_cache(key)
    if not value:
        return None

    try:
        return model_class.model_validate_json(value)
    except pydantic.ValidationError as e:
        logger.error("Failed to parse cached model", key=key, model=model_class.__name__, error=str(e))
        return None


def delete_cache(key: str) -> None:
    """
    Delete a value from the Redis cache.

    Args:
        key (str): Cache key.
    """
    with sentry_sdk.start_span(op="cache.delete", name=key) as span:
        client = RedisClient.get_client()
        if client is None:
            span.set_data("status", "disabled")
            return

        try:
            client.delete(key)
            logger.debug("Cache deleted", key=key)
            span.set_data("status", "success")
        except redis.RedisError as e:
            logger.warning("Failed to delete cache, continuing without cache", key=key, error=str(e))
            span.set_status("internal_error")
