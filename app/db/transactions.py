"""
Transaction helpers for SQLAlchemy sessions.
Commit on success, roll back on failure, always re-raise.
"""
from functools import wraps
from typing import Callable
import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def atomic_transaction(func: Callable) -> Callable:
    """
    Decorator that commits the session after the wrapped function returns
    and rolls it back if it raises.

    Usage:
        @atomic_transaction
        def replace_code(db: Session, ...):
            ...

    The decorated function must accept 'db: Session' as first parameter.
    """
    @wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            result = func(db, *args, **kwargs)
            db.commit()
            logger.debug(f"✅ Transaction committed: {func.__name__}")
            return result
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Transaction rolled back: {func.__name__} - Error: {e}")
            raise

    return wrapper


class TransactionContext:
    """
    Context manager for explicit transaction control.

    Usage:
        with TransactionContext(db) as tx:
            tx.session.add(row)
        # committed on exit, rolled back if the block raised
    """

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.session.rollback()
            logger.error(f"❌ Transaction rolled back due to: {exc_val}")
            return False
        self.session.commit()
        return False
