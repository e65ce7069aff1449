"""Per-resource serialization of booking writes"""

import hashlib
import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.orm import Session

from poolbook.services.references import ResourceRef, RoomRef

logger = logging.getLogger(__name__)


def booking_scope(resource: ResourceRef, organization_id: Optional[UUID]) -> str:
    """
    Key identifying the set of bookings that contend with each other.

    Rooms are contended by every organization of a namespace, so the key is the
    room alone. Pool and ephemeral resources are scoped per organization.
    """
    if isinstance(resource, RoomRef):
        return f"{resource.resource_class.value}:{resource.resource_id}"
    return f"{resource.resource_class.value}:{resource.resource_id}:{organization_id}"


def advisory_key(scope: str) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock"""
    digest = hashlib.blake2b(scope.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


class ResourceLocks:
    """
    Serializes check-then-insert sequences per booking scope.

    On PostgreSQL a transaction-level advisory lock is taken inside the
    session, so it also serializes writers in other processes and is released
    by the commit or rollback that ends the transaction. Other databases fall
    back to a lock per scope held in this process. A scope lock lives only
    while some request holds a reference to it, so the registry does not grow
    with the number of resources ever booked.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _local_lock(self, scope: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(scope)
            if lock is None:
                lock = self._locks[scope] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, db: Session, scope: str) -> Iterator[None]:
        """
        Hold the lock for scope while the body runs.

        Any exception raised by the body rolls the session back before it propagates.
        """
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": advisory_key(scope)})
            logger.debug(f"Acquired advisory lock for {scope}")
            try:
                yield
            except Exception:
                db.rollback()
                raise
            return

        lock = self._local_lock(scope)
        with lock:
            try:
                yield
            except Exception:
                db.rollback()
                raise


# Shared by every engine in the process
resource_locks = ResourceLocks()
