"""Database session management with the context manager pattern.

Usage:
    with db_session() as db:
        guard = OrderGuard(OrderRepository(db))
        outcome = guard.take_order(order_id, actor, OrderType.SELL)

The transport layer opens one session per inbound event; the guards commit
their own conditional writes, so the context manager only guarantees cleanup
and rollback of anything left half-done.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from lnp2p.storage.database.base import get_session
from lnp2p.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions with automatic cleanup.

    Yields:
        Session: SQLAlchemy session

    Raises:
        DatabaseNotInitializedError: If ``init_db()`` was not called
        Exception: Any exception from within the context (after rollback)
    """
    db = get_session()
    try:
        logger.debug("db_session_created", session_id=id(db))
        yield db
    except Exception as e:
        logger.error(
            "db_session_error_rollback",
            error=str(e),
            error_type=type(e).__name__,
            session_id=id(db),
        )
        db.rollback()
        raise
    finally:
        logger.debug("db_session_closed", session_id=id(db))
        db.close()
