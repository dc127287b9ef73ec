"""
Database connection and session management with centralized configuration.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DatabaseConfig, get_settings
from .logging import get_logger
from .models import Base

logger = get_logger(__name__)


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper configuration.

    An in-memory SQLite database is shared across threads through a single
    static connection.

    Example:
        >>> engine = create_database_engine()
    """
    if config is None:
        config = get_settings().database

    connection_url = config.get_connection_url()
    engine_options = config.get_engine_options()

    if config.in_memory:
        engine_options.pop("pool_recycle", None)
        engine_options.update(
            poolclass=StaticPool, connect_args={"check_same_thread": False}
        )

    logger.info(f"Creating database engine for {config.backend} backend")
    logger.debug(f"Connection URL: {connection_url.split('@')[0]}@***")  # Hide credentials in logs

    try:
        engine = create_engine(connection_url, **engine_options)
        logger.info("Database engine created successfully")
        return engine
    except Exception as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Create SQLAlchemy session factory.

    Example:
        >>> SessionLocal = create_session_factory()
        >>> with SessionLocal() as session:
        ...     pass
    """
    if engine is None:
        engine = create_database_engine()

    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True
    )


def initialise_database(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)
    logger.info("Database tables ensured")

