"""Per-room critical sections for booking writes."""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from threading import Lock
from typing import Iterable, Iterator


class LockTimeoutError(Exception):
    """Raised when a room lock cannot be acquired within the timeout."""

    def __init__(self, room_id: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Room {room_id} is busy; lock not acquired within {timeout_seconds:.2f}s"
        )
        self.room_id = room_id
        self.timeout_seconds = timeout_seconds


class RoomLockRegistry:
    """Hands out one exclusive lock per room id.

    Bookings for different rooms never contend; bookings for the same room
    serialize on that room's lock.
    """

    def __init__(self, timeout_seconds: float) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._timeout_seconds = timeout_seconds
        self._registry_lock = Lock()
        self._locks: dict[str, Lock] = {}

    def _lock_for(self, room_id: str) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = Lock()
                self._locks[room_id] = lock
            return lock

    @contextmanager
    def hold(self, room_id: str) -> Iterator[None]:
        lock = self._lock_for(room_id)
        if not lock.acquire(timeout=self._timeout_seconds):
            raise LockTimeoutError(room_id, self._timeout_seconds)
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def hold_many(self, room_ids: Iterable[str]) -> Iterator[None]:
        """Hold several room locks, acquired in sorted order to avoid deadlock."""
        with ExitStack() as stack:
            for room_id in sorted(set(room_ids)):
                stack.enter_context(self.hold(room_id))
            yield
