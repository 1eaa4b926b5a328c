"""
Database connection management for Yardstick CRM.
Handles SQLAlchemy engine creation, session management, and connection verification.
"""

import os
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool

logger = logging.getLogger(__name__)

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal are created lazily on first use
engine = None
SessionLocal = None


def get_database_url():
    """DATABASE_URL from the environment, normalised for SQLAlchemy."""
    url = os.environ.get('DATABASE_URL')
    # Handle Render's postgres:// vs postgresql:// URL format
    if url and url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global engine

    if engine is not None:
        return engine

    database_url = get_database_url()
    if not database_url:
        logger.error("DATABASE_URL environment variable is not set!")
        raise RuntimeError(
            "DATABASE_URL not configured. Cannot connect to PostgreSQL database. "
            "Please set the DATABASE_URL environment variable."
        )

    try:
        engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # Verify connections before using
            pool_recycle=300,    # Recycle connections after 5 minutes
            echo=False           # Set to True for SQL debugging
        )
        logger.info("Database engine created successfully")
        return engine
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise RuntimeError(f"Failed to connect to database: {e}") from e


def get_session_factory():
    """Get or create the session factory."""
    global SessionLocal

    if SessionLocal is not None:
        return SessionLocal

    eng = get_engine()
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=eng)
    return SessionLocal


@contextmanager
def get_db_session(session_factory=None):
    """
    Context manager for getting a database session.
    Commits on success, rolls back on error.

    Example:
        with get_db_session() as db:
            clients = db.query(Client).all()
    """
    factory = session_factory or get_session_factory()
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection(bind=None):
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = bind or get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.info("Database connection verified successfully")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}") from e


def init_db(bind=None):
    """
    Create all tables.
    Production schemas are managed by Alembic; this is for development and tests.
    """
    # Import models to ensure they're registered with Base
    from database import models  # noqa: F401

    eng = bind or get_engine()
    Base.metadata.create_all(bind=eng)
    logger.info("Database tables created/verified")


def is_db_configured():
    """Check if DATABASE_URL is configured (without failing)."""
    return bool(get_database_url())
