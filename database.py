from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool
import logging

from config import settings
from errors import DatabaseUnavailable

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

DATABASE_URL = settings.DATABASE_URL.strip()

# Some hosting environments accidentally prepend "DATABASE_URL=" to the value
# (e.g. when copying `export DATABASE_URL=...`). Strip that prefix if present
PREFIX = "DATABASE_URL="
if DATABASE_URL.startswith(PREFIX):
    DATABASE_URL = DATABASE_URL[len(PREFIX):].strip()

# Provide a sensible default for local development if DATABASE_URL is missing
if not DATABASE_URL:
    default_sqlite_path = BASE_DIR / "members.db"
    DATABASE_URL = f"sqlite:///{default_sqlite_path.as_posix()}"
    logger.warning(
        "DATABASE_URL not found in environment. Falling back to SQLite at %s",
        default_sqlite_path
    )


def build_engine_kwargs(url: str) -> dict:
    engine_kwargs = {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
    }

    # SQLite has different pooling requirements
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        return engine_kwargs

    engine_kwargs.update(
        {
            "poolclass": QueuePool,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        }
    )
    if url.startswith("mysql"):
        # PyMySQL per-statement socket timeouts
        engine_kwargs["connect_args"] = {
            "read_timeout": settings.DB_STATEMENT_TIMEOUT,
            "write_timeout": settings.DB_STATEMENT_TIMEOUT,
        }
    return engine_kwargs


engine = create_engine(DATABASE_URL, **build_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

Base = declarative_base()


def prefix(table: str) -> str:
    """Physical table name for a logical one, e.g. 'Members' -> 'ph7_Members'."""
    return f"{settings.DB_TABLE_PREFIX}{table}"


@contextmanager
def session_scope(factory=None) -> Iterator[Session]:
    """
    Open a session, commit on success and roll back on any error.
    The session is closed on every exit path.
    """
    db = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except OperationalError as e:
        db.rollback()
        logger.error(f"Database unavailable: {e}")
        raise DatabaseUnavailable(str(e)) from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a multi-statement unit on an existing session.
    Everything inside is committed together or rolled back together.
    """
    try:
        yield db
        db.commit()
    except OperationalError as e:
        db.rollback()
        logger.error(f"Database unavailable, transaction rolled back: {e}")
        raise DatabaseUnavailable(str(e)) from e
    except Exception:
        db.rollback()
        raise


# Log connection pool status for observability
if DATABASE_URL.startswith("sqlite"):
    logger.info("Database configured with SQLite at %s", DATABASE_URL)
else:
    logger.info(
        "Database connection pool configured: size=%s, max_overflow=%s",
        settings.DB_POOL_SIZE, settings.DB_MAX_OVERFLOW
    )
