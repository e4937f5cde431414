"""Database models and connection utilities for the match engine."""

from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from matchengine.utils.errors import ConfigurationError, DatabaseError
from matchengine.utils.logging import get_logger

logger = get_logger(__name__)

NOT_MENTIONED = "not_mentioned"


def utcnow() -> datetime:
    """Get current UTC time (naive) for database storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class ProfileDB(Base):
    """User profile database model.

    Owned by the profile service; the match engine only reads it.
    """

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    is_bride: Mapped[bool] = mapped_column(Boolean, default=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    height_cm: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    physically_challenged: Mapped[bool] = mapped_column(Boolean, default=False)
    community: Mapped[str] = mapped_column(String(50), default=NOT_MENTIONED)
    marital_status: Mapped[str] = mapped_column(String(50), default=NOT_MENTIONED)
    profession: Mapped[str] = mapped_column(String(50), default=NOT_MENTIONED)
    profession_type: Mapped[str] = mapped_column(String(50), default=NOT_MENTIONED)
    highest_education_level: Mapped[str] = mapped_column(String(50), default=NOT_MENTIONED)
    home_district: Mapped[str] = mapped_column(String(50), default=NOT_MENTIONED)
    last_login: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)


class ProfileMatchDB(Base):
    """Directed match action database model (one row per viewer/target pair)."""

    __tablename__ = "profile_matches"
    __table_args__ = (UniqueConstraint("user_id", "target_id", name="unique_profile_match"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(50), index=True)
    target_id: Mapped[str] = mapped_column(String(50), index=True)
    status: Mapped[str] = mapped_column(String(20), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)


class MutualMatchDB(Base):
    """Mutual match database model."""

    __tablename__ = "mutual_matches"
    __table_args__ = (
        UniqueConstraint("user_id_1", "user_id_2", name="unique_mutual_match"),
        CheckConstraint("user_id_1 < user_id_2", name="order_user_ids"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id_1: Mapped[str] = mapped_column(String(50), index=True)
    user_id_2: Mapped[str] = mapped_column(String(50), index=True)
    matched_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)


class ProfileRatingDB(Base):
    """Elo rating database model.

    `version` is bumped on every update; a write against a stale version
    raises StaleDataError instead of overwriting another writer's delta.
    """

    __tablename__ = "profile_ratings"

    profile_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    rating: Mapped[int] = mapped_column(Integer)
    match_count: Mapped[int] = mapped_column(Integer, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}


class Database:
    """Singleton database connection manager."""

    _engine = None
    _session_factory = None

    @classmethod
    def get_engine(cls) -> Any:
        """Get or create the database engine."""
        if cls._engine is None:
            from matchengine.config import get_settings

            settings = get_settings()
            database_url = settings.DATABASE_URL

            if not database_url:
                raise ConfigurationError("DATABASE_URL is not configured")

            # SQLAlchemy requires postgresql:// instead of postgres://
            if database_url.startswith("postgres://"):
                database_url = database_url.replace("postgres://", "postgresql://", 1)

            try:
                cls._engine = create_engine(database_url, pool_recycle=300, pool_pre_ping=True, echo=settings.DEBUG)
                logger.info("Database engine created")
            except (SQLAlchemyError, ValueError) as e:
                safe_url = _redact_url(database_url)
                logger.error("Failed to create database engine", error=str(e), url=safe_url)
                raise DatabaseError("Failed to connect to database", details={"error": str(e), "url": safe_url}) from e
        return cls._engine

    @classmethod
    def get_session_factory(cls) -> sessionmaker:
        """Get or create the session factory."""
        if cls._session_factory is None:
            cls._session_factory = sessionmaker(bind=cls.get_engine(), expire_on_commit=False)
        return cls._session_factory

    @classmethod
    def get_session(cls) -> Session:
        """Get a new database session."""
        return cls.get_session_factory()()

    @classmethod
    def create_tables(cls) -> None:
        """Create all database tables."""
        Base.metadata.create_all(cls.get_engine())
        logger.info("Database tables created")

    @classmethod
    def reset(cls) -> None:
        """Dispose the engine and forget the session factory."""
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None
        cls._session_factory = None


def _redact_url(database_url: str) -> str:
    """Hide the password part of a database URL for logging."""
    if "@" not in database_url:
        return database_url
    credentials, host = database_url.rsplit("@", 1)
    if ":" not in credentials.split("//", 1)[-1]:
        return database_url
    scheme_user, _ = credentials.rsplit(":", 1)
    return f"{scheme_user}:***@{host}"


def get_session() -> Session:
    """Get a database session."""
    return Database.get_session()


def init_database() -> None:
    """Initialize the database and create tables."""
    Database.create_tables()
