"""
Transaction helpers for SQLAlchemy sessions
Every read-modify-write on a record set commits or rolls back as a unit
"""
from sqlalchemy.orm import Session
from typing import Callable
from functools import wraps
import logging
import time

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


def atomic_transaction(func: Callable) -> Callable:
    """
    Commit on success, roll back and re-raise on failure.

    The decorated function must accept 'db: Session' as first parameter.
    The return value is only handed back once the commit went through.
    """
    @wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            result = func(db, *args, **kwargs)
            db.commit()
            logger.debug(f"Transaction committed: {func.__name__}")
            return result
        except Exception as e:
            db.rollback()
            logger.error(f"Transaction rolled back: {func.__name__} - Error: {e}")
            raise

    return wrapper


class TransactionContext:
    """
    Context manager for explicit transaction control

    Usage:
        with TransactionContext(db) as tx:
            tx.session.add(record)
        # commits on exit, rolls back if the block raised
    """

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.session.rollback()
            logger.error(f"Transaction rolled back due to: {exc_val}")
            return False
        self.session.commit()
        return False


def retry_on_deadlock(max_attempts: int = 3):
    """
    Retry the wrapped call when the database reports a deadlock

    Args:
        max_attempts: Maximum number of attempts, including the first one

    Usage:
        @retry_on_deadlock(max_attempts=3)
        @atomic_transaction
        def concurrent_operation(db: Session, ...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            delay = 0.1

            while True:
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if 'deadlock' not in str(e).lower():
                        raise
                    attempt += 1
                    if attempt >= max_attempts:
                        logger.error(f"Max retry attempts ({max_attempts}) reached for deadlock")
                        raise
                    logger.warning(f"Deadlock detected, retrying (attempt {attempt}/{max_attempts})")
                    time.sleep(delay)
                    delay *= 2

        return wrapper
    return decorator
