"""
In-process serialization of read-modify-write operations per (record set, identity)

Database constraints cover concurrent writers in other processes; this lock keeps
two requests in the same process from interleaving on one identity.
"""
import threading
from contextlib import contextmanager
from functools import wraps
from typing import Callable

from sqlalchemy.orm import Session

from app.core.identity import normalize_identity

CODES = "verification_codes"
VERIFIED_EMAILS = "verified_emails"
ENTITLEMENTS = "entitlements"


class KeyedLock:
    """A lock per key, created on demand and dropped once nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], list] = {}

    @contextmanager
    def hold(self, record_set: str, key: str):
        with self._guard:
            entry = self._locks.setdefault((record_set, key), [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[(record_set, key)]

    def __len__(self):
        with self._guard:
            return len(self._locks)


identity_locks = KeyedLock()


def serialized(record_set: str) -> Callable:
    """
    Hold the (record_set, identity) lock for the whole wrapped call, commit included.

    The decorated function must accept (db: Session, email: str, ...).
    Stack it above @atomic_transaction.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(db: Session, email: str, *args, **kwargs):
            key = normalize_identity(email) if email else ""
            with identity_locks.hold(record_set, key):
                return func(db, email, *args, **kwargs)
        return wrapper
    return decorator
