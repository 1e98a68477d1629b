import threading
import time
from collections import deque
from contextlib import contextmanager
from functools import wraps
from typing import Optional

from deploy_logger.datetime_utils import format_datetime_iso, utcnow
from deploy_logger.errors import WriteLockTimeout
from deploy_logger.logging_config import get_logger

logger = get_logger(__name__)


class WriteLockManager:
    """
    Serializes store mutations: one write in flight at a time.

    Waiting writers form a single FIFO queue and are granted the lock in
    arrival order. A writer that is not granted the lock within the timeout
    leaves the queue and fails. The lock is re-entrant for the thread that
    holds it.
    """

    def __init__(self, timeout_seconds: float = 5):
        self._cond = threading.Condition()
        self._waiting = deque()
        self._timeout_seconds = timeout_seconds
        self._current_operation: Optional[str] = None
        self._holder_thread_id: Optional[int] = None
        self._depth = 0
        self._acquired_at = None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def is_locked(self) -> bool:
        """Check if a write is currently in flight"""
        with self._cond:
            return self._depth > 0

    def get_current_operation(self) -> Optional[str]:
        """Get the name of the operation holding the lock"""
        with self._cond:
            return self._current_operation if self._depth > 0 else None

    def _acquire(self, operation_name: str, timeout: float) -> bool:
        me = threading.get_ident()
        with self._cond:
            if self._depth > 0 and self._holder_thread_id == me:
                self._depth += 1
                logger.debug("Re-entrant write lock", operation=operation_name)
                return True

            ticket = object()
            self._waiting.append(ticket)
            deadline = time.monotonic() + timeout
            try:
                while self._depth > 0 or self._waiting[0] is not ticket:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return False
                    self._cond.wait(remaining)

                self._waiting.popleft()
                self._depth = 1
                self._current_operation = operation_name
                self._holder_thread_id = me
                self._acquired_at = utcnow()
                logger.debug("Write lock acquired", operation=operation_name, still_waiting=len(self._waiting))
                return True
            finally:
                if ticket in self._waiting:
                    # Timed out: let the writer behind us move up
                    self._waiting.remove(ticket)
                    self._cond.notify_all()

    def _release(self, operation_name: str):
        with self._cond:
            self._depth -= 1
            if self._depth == 0:
                self._current_operation = None
                self._holder_thread_id = None
                self._acquired_at = None
                logger.debug("Write lock released", operation=operation_name)
                self._cond.notify_all()

    @contextmanager
    def acquire_write_lock(self, operation_name: str, timeout_seconds: Optional[float] = None):
        """
        Context manager to acquire the write lock

        Args:
            operation_name: Name of the operation acquiring the lock
            timeout_seconds: Override for the configured acquisition timeout

        Raises:
            WriteLockTimeout: If the lock is not granted within the timeout
        """
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds

        if not self._acquire(operation_name, timeout):
            logger.warning(
                "Write lock acquisition timed out",
                operation=operation_name,
                held_by=self.get_current_operation(),
                timeout_seconds=timeout,
            )
            raise WriteLockTimeout(
                f"Write lock acquisition timed out after {timeout}s for '{operation_name}'"
            )

        try:
            yield
        finally:
            self._release(operation_name)

    def get_status(self) -> dict:
        """Get current status of the lock manager"""
        with self._cond:
            acquired_at = self._acquired_at
            return {
                "is_locked": self._depth > 0,
                "current_operation": self._current_operation,
                "held_by_thread": self._holder_thread_id,
                "waiting": len(self._waiting),
                "acquired_at": format_datetime_iso(acquired_at),
                "held_for_seconds": (utcnow() - acquired_at).total_seconds() if acquired_at else 0,
                "timeout_seconds": self._timeout_seconds,
            }


def serialized_write(operation_name: str):
    """
    Decorator for store methods that must run under the store's write lock.

    The decorated method's instance must expose a `write_lock` attribute.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            with self.write_lock.acquire_write_lock(operation_name):
                return func(self, *args, **kwargs)

        return wrapper

    return decorator
