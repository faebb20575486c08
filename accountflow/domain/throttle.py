"""
Login and verification throttling.

This is admission control, not a rate limiter: every login attempt waits a
fixed delay, and attempts against the same email additionally queue behind
one another. Verification links are serialized globally.
"""

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager


class BoundedLockCache:
    """
    Per-key locks with a hard capacity.

    When the cache is full it is emptied before the next key is added. An
    attacker cycling through distinct emails can therefore never grow it past
    the capacity; the price is that a reset briefly forgets existing locks.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._locks: dict[str, threading.Lock] = {}
        self._mutex = threading.Lock()

    def get(self, key: str) -> threading.Lock:
        """Return the lock for a key, creating it if needed."""
        with self._mutex:
            lock = self._locks.get(key)
            if lock is None:
                if len(self._locks) >= self._capacity:
                    self._locks = {}
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._mutex:
            return len(self._locks)


class LoginThrottle:
    """Fixed delay for every login plus a serialized delay per email."""

    def __init__(
        self,
        delay_seconds: float = 1.0,
        per_email_seconds: float = 1.0,
        capacity: int = 1000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._delay = delay_seconds
        self._per_email = per_email_seconds
        self._locks = BoundedLockCache(capacity)
        self._sleep = sleep

    @contextmanager
    def admit(self, email: str) -> Iterator[None]:
        """Block until a login attempt for this email may proceed."""
        if self._delay > 0:
            self._sleep(self._delay)
        with self._locks.get(email):
            if self._per_email > 0:
                self._sleep(self._per_email)
            yield


class VerificationThrottle:
    """Serializes verification attempts across all accounts."""

    def __init__(self, delay_seconds: float = 1.0, sleep: Callable[[float], None] = time.sleep) -> None:
        self._delay = delay_seconds
        self._lock = threading.Lock()
        self._sleep = sleep

    def wait(self) -> None:
        if self._delay <= 0:
            return
        with self._lock:
            self._sleep(self._delay)
