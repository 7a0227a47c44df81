import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from consumables.config import settings
from consumables.errors import TransientConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Candidates for a retry; is_contention() narrows them down
STORE_ERRORS = (StaleDataError, IntegrityError, OperationalError)

SQLITE_BUSY_MESSAGES = ("database is locked", "database is busy", "database table is locked")
# serialization_failure, deadlock_detected, lock_not_available
POSTGRES_CONTENTION_CODES = {"40001", "40P01", "55P03"}
POSTGRES_UNIQUE_VIOLATION = "23505"
# Two first restocks of one product racing to insert its stock row
STOCK_PRODUCT_UNIQUE_MARKERS = ("consumable_stock.product_id", "consumable_stock_product_id")


def _sqlstate(exc) -> str | None:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_contention(exc: Exception) -> bool:
    """True for store errors caused by a concurrent writer, which a re-read can resolve."""
    if isinstance(exc, StaleDataError):
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    if isinstance(exc, IntegrityError):
        unique = _sqlstate(exc) == POSTGRES_UNIQUE_VIOLATION or "unique constraint" in message
        return unique and any(marker in message for marker in STOCK_PRODUCT_UNIQUE_MARKERS)
    if isinstance(exc, OperationalError):
        if _sqlstate(exc) in POSTGRES_CONTENTION_CODES:
            return True
        return any(busy in message for busy in SQLITE_BUSY_MESSAGES)
    return False


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str, **kwargs):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # Bounds how long a writer waits for the SQLite write lock
        connect_args["timeout"] = settings.STOCK_TX_TIMEOUT_SECONDS
    engine = create_engine(url, connect_args=connect_args, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, timeout: float | None = None) -> Iterator[Session]:
    """Run a block as one all-or-nothing unit on ``db``.

    Commits when the block finishes, rolls back on any exception. A unit that
    outlives ``timeout`` seconds is rolled back and reported as a transient
    conflict, so a ledger update is never committed without its log row.
    """
    if timeout is None:
        timeout = settings.STOCK_TX_TIMEOUT_SECONDS
    started = time.monotonic()
    try:
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))
        yield db
        db.flush()
        elapsed = time.monotonic() - started
        if elapsed > timeout:
            raise TransientConflictError(f"Stock update timed out after {elapsed:.2f}s")
        db.commit()
    except Exception:
        db.rollback()
        raise


def run_atomic(db: Session, unit: Callable[[], T], label: str = "stock update") -> T:
    """Execute ``unit`` inside :func:`atomic`, retrying on store contention.

    ``unit`` must re-read everything it needs on every call. Errors raised by
    ``unit`` itself (validation, business rules) and store errors that are not
    contention (missing table, broken constraint, lost connection) propagate
    immediately.
    """
    attempts = settings.STOCK_MAX_RETRIES + 1
    for attempt in range(1, attempts + 1):
        try:
            with atomic(db):
                result = unit()
            return result
        except STORE_ERRORS as exc:
            if not is_contention(exc):
                raise
            if attempt == attempts:
                logger.error("%s failed after %d attempts: %s", label, attempt, exc)
                raise TransientConflictError(
                    f"{label} could not be completed because of concurrent changes, please retry"
                ) from exc
            logger.warning("%s hit a concurrent write (attempt %d/%d): %s", label, attempt, attempts, exc)
            time.sleep(settings.STOCK_RETRY_BACKOFF_MS * attempt / 1000)


def init_db(bind=None):
    # Import all models so Base.metadata knows about them
    import consumables.models.category  # noqa: F401
    import consumables.models.product  # noqa: F401
    import consumables.models.stock  # noqa: F401
    import consumables.models.user  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
