# src/core/database.py
import logging
import time
from contextlib import contextmanager
from functools import wraps

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from src.core.config import settings
from src.core.exceptions import (
    CommerceException, ConflictException, InvariantViolationException
)

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings.DB_LOCK_TIMEOUT_MS / 1000,
            }
        }
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_options(settings.DATABASE_URL)
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=True)

Base = declarative_base()


def install_timeouts(target_engine):
    """Bound lock and statement waits on every pooled PostgreSQL connection."""
    if target_engine.dialect.name != "postgresql":
        return

    @event.listens_for(target_engine, "connect")
    def set_session_timeouts(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET lock_timeout = {int(settings.DB_LOCK_TIMEOUT_MS)}")
        cursor.execute(f"SET statement_timeout = {int(settings.DB_STATEMENT_TIMEOUT_MS)}")
        cursor.close()
        # the pool rolls back on checkin, which would undo the SETs
        dbapi_connection.commit()


install_timeouts(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ================================
# TRANSACTION HELPERS
# ================================

# lock_not_available, serialization_failure, deadlock_detected, query_canceled
RETRYABLE_PGCODES = {"55P03", "40001", "40P01", "57014"}
UNIQUE_VIOLATION_PGCODE = "23505"
SQLITE_UNIQUE_PREFIX = "unique constraint failed: "


def _pgcode_from(exc: Exception):
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(exc, "pgcode", None)


def is_retryable(exc: Exception) -> bool:
    code = _pgcode_from(exc)
    if code and code in RETRYABLE_PGCODES:
        return True
    msg = str(exc).lower()
    return any(k in msg for k in (
        "database is locked",
        "deadlock detected",
        "could not serialize access",
        "lock timeout",
    ))


def unique_violation_table(exc: Exception):
    """Table whose unique constraint rejected the insert, or None."""
    orig = getattr(exc, "orig", None)
    if _pgcode_from(exc) == UNIQUE_VIOLATION_PGCODE:
        diag = getattr(orig, "diag", None)
        return getattr(diag, "table_name", None)
    msg = str(orig if orig is not None else exc).lower()
    if msg.startswith(SQLITE_UNIQUE_PREFIX):
        return msg[len(SQLITE_UNIQUE_PREFIX):].split(".", 1)[0].strip()
    return None


@contextmanager
def atomic(db: Session, insert_race_tables: tuple = ()):
    """
    Run the block as one unit of work: commit on success, roll back
    everything on any error. Driver errors are translated into the
    engine taxonomy (Conflict for contention, InvariantViolation for
    constraint breaches).

    A unique violation on one of `insert_race_tables` means a concurrent
    request inserted the same row first, so it is reported as a Conflict
    and the caller may retry.
    """
    try:
        yield db
        db.commit()
    except CommerceException:
        db.rollback()
        raise
    except DBAPIError as e:
        db.rollback()
        if is_retryable(e):
            logger.warning(f"Transaction conflict: {str(e.orig if e.orig else e)}")
            raise ConflictException() from e
        if isinstance(e, IntegrityError):
            if unique_violation_table(e) in insert_race_tables:
                logger.warning(f"Concurrent insert into {unique_violation_table(e)}: {str(e.orig)}")
                raise ConflictException() from e
            logger.error(f"Constraint violation aborted transaction: {str(e)}")
            raise InvariantViolationException(f"Constraint violation: {str(e.orig)}") from e
        logger.error(f"Database error aborted transaction: {str(e)}")
        raise
    except Exception:
        db.rollback()
        raise


def retry_on_conflict(max_attempts: int = None, backoff: float = 0.05):
    """Retry the whole operation on ConflictException. Only for idempotent calls."""
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            attempts = max_attempts or settings.CONFLICT_RETRY_ATTEMPTS
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except ConflictException:
                    if attempt >= attempts:
                        raise
                    logger.info(f"Retrying {fn.__name__} after conflict (attempt {attempt})")
                    time.sleep(backoff * attempt)
        return wrapper
    return deco
