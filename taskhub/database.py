"""
Database Session Management - Engine, sessions and table setup

Each service process binds its own engine to DATABASE_URL; a service only
ever touches the tables of the models it owns.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import logging

from taskhub.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Pool settings for server databases, thread sharing for SQLite"""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}  # Request threads share the file
    return {
        "pool_size": settings.DB_POOL_SIZE,  # Number of persistent connections
        "max_overflow": settings.DB_MAX_OVERFLOW,  # Additional connections when pool is exhausted
        "pool_timeout": settings.DB_POOL_TIMEOUT,  # Wait time for available connection
        "pool_pre_ping": True,  # Verify connection health before using
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # Log all SQL queries in debug mode
    **_engine_options(settings.DATABASE_URL),
)


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    logger.debug("🔌 New database connection established")


@event.listens_for(engine, "close")
def receive_close(dbapi_conn, connection_record):
    logger.debug("🔌 Database connection closed")


# Session factory - creates new sessions for each request
SessionLocal = sessionmaker(
    autocommit=False,  # Require explicit commits
    autoflush=False,   # Control when changes are flushed to database
    bind=engine,
)

# Base class for all SQLAlchemy models - provides metadata and table registry
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session dependency.
    Rolls back whatever the endpoint left uncommitted when it raises.
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"❌ Database error during request: {str(e)}", exc_info=True)
        db.rollback()  # Rollback failed transaction to prevent partial commits
        raise
    except Exception:
        db.rollback()  # Endpoint errors leave nothing half-written
        raise
    finally:
        db.close()  # Return connection to pool
        logger.debug("✅ Database session closed")


def init_db(bind=None) -> None:
    """
    Create all tables.
    Used for development setup - production databases are provisioned per service.
    """
    logger.info("🏗️  Creating database tables...")
    try:
        from taskhub import models  # noqa: F401 - registers every table with Base
        Base.metadata.create_all(bind=bind or engine)
        logger.info("✅ Database tables created successfully")
    except Exception as e:
        logger.error(f"❌ Failed to create database tables: {str(e)}", exc_info=True)
        raise


def check_db_connection() -> bool:
    """
    SELECT 1 against the engine; False instead of raising so startup can log and exit.
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {str(e)}", exc_info=True)
        return False


def get_pool_stats() -> dict:
    """
    Get current database connection pool statistics.
    SQLite pools do not expose sizing, so only the pool class is reported there.
    """
    pool = engine.pool
    stats = {"pool_class": type(pool).__name__}  # e.g. QueuePool, StaticPool
    for name in ("size", "checkedout", "overflow", "checkedin"):
        method = getattr(pool, name, None)
        if callable(method):
            stats[name] = method()
    return stats


def close_db_connections():
    """
    Gracefully close all database connections.
    Called during application shutdown.
    """
    logger.info("🔌 Closing database connections...")
    engine.dispose()  # Closes every pooled connection
    logger.info("✅ All database connections closed")
