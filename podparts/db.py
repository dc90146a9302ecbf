from contextlib import contextmanager
import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from .errors import ConsoleError
from .models import Base

logger = logging.getLogger(__name__)

engine = None
SessionLocal = None


SQLITE_CONNECT_ARGS = {"check_same_thread": False, "timeout": 5}
SQLITE_JOURNAL_MODE = "WAL"
SQLITE_BUSY_TIMEOUT_MS = 30000


def _configure_sqlite_connection(dbapi_connection):
    """Apply common SQLite PRAGMA settings to the given connection."""

    cursor = dbapi_connection.cursor()
    try:
        try:
            cursor.execute(f"PRAGMA journal_mode={SQLITE_JOURNAL_MODE}")
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Unable to set SQLite journal_mode to %s; continuing without WAL mode: %s",
                SQLITE_JOURNAL_MODE,
                exc,
            )
        else:
            # ``journal_mode`` returns the active mode as a row, consume it to avoid
            # leaving the cursor in a pending state.
            cursor.fetchone()

        try:
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Unable to set SQLite busy_timeout; continuing with default timeout: %s",
                exc,
            )

        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Unable to enable SQLite foreign_keys; continuing without enforcement: %s",
                exc,
            )
    finally:
        cursor.close()


def configure_engine(db_path):
    """Create SQLAlchemy engine and session factory for ``db_path``."""
    global engine, SessionLocal
    engine = create_engine(
        f"sqlite:///{db_path}",
        future=True,
        connect_args=SQLITE_CONNECT_ARGS,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _record):  # pragma: no cover - SQLAlchemy hook
        _configure_sqlite_connection(dbapi_connection)

    SessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,  # keep returned objects usable after commit
    )


@contextmanager
def get_session():
    if SessionLocal is None:
        raise RuntimeError("Database not configured. Call configure_engine() first.")
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except ConsoleError as e:
        session.rollback()
        logger.debug("Operation rejected: %s", e)
        raise
    except Exception as e:
        session.rollback()
        logger.exception("Database session error: %s", e)
        raise
    finally:
        session.close()


def init_db():
    """Create any missing tables for the configured database."""
    Base.metadata.create_all(engine)


def reset_db():
    """Drop all tables and recreate them.

    Used by tests that need a completely clean database state, including
    forgetting the Alembic revision stamp."""
    Base.metadata.drop_all(engine)
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE IF EXISTS alembic_version")
    Base.metadata.create_all(engine)
