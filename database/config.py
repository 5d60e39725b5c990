"""
Database Configuration for the impostor word game.

Contains database engine setup, session management, and initialization functions.
"""

import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from config.settings import DATABASE_URL, SQL_DEBUG
from .models import Base

# Configure logging
logger = logging.getLogger(__name__)


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_DEBUG):
    """
    Create an engine for the given database URL.

    SQLite gets foreign keys switched on so deletes cascade; an in-memory
    SQLite database shares one connection so every session sees it.
    """
    if url.startswith('sqlite'):
        in_memory = url in ('sqlite://', 'sqlite:///:memory:')
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else NullPool
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # PostgreSQL configuration
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,  # Recycle connections after 1 hour
    )


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


# Create database engine and session factory
engine = make_engine()
SessionLocal = make_session_factory(engine)


@contextmanager
def get_db_session(session_factory=None):
    """Context manager for database sessions with automatic cleanup."""
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        session.close()


def init_database(bind=None):
    """Create all tables that do not exist yet."""
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
