"""
identity.py - Caller identity and clock stand-ins

CallerContext answers "who is calling" for the current thread or task, using
a context variable so concurrent callers never see each other's identity.

    identity = CallerContext()
    with identity.acting_as("alice"):
        vault.deposit(1_000_000)

ManualClock and SystemClock provide `now()` in whole Unix seconds.
"""

from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
import threading
import time

from .core import Unauthorized


class CallerContext:
    """IdentityService backed by a context variable."""

    def __init__(self, name: str = "caller"):
        self._caller: ContextVar[Optional[str]] = ContextVar(name, default=None)

    def current_caller(self) -> str:
        """
        Return the identity acting in the current context.

        Raises:
            Unauthorized: If no identity has been established.
        """
        caller = self._caller.get()
        if caller is None:
            raise Unauthorized("no caller identity established")
        return caller

    @contextmanager
    def acting_as(self, identity: str) -> Iterator[str]:
        """Establish `identity` as the caller for the duration of the block."""
        if not identity or not identity.strip():
            raise ValueError("Caller identity cannot be empty")
        token = self._caller.set(identity)
        try:
            yield identity
        finally:
            self._caller.reset(token)


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Clock that only moves when told to.

    Unlike a real clock it can be set backwards, which is how tests reproduce
    clock skew between the oracle and its caller.
    """

    def __init__(self, start: int = 1_700_000_000):
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by `seconds` and return the new time."""
        if seconds < 0:
            raise ValueError(f"Cannot advance by a negative amount: {seconds}")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: int) -> None:
        with self._lock:
            self._now = timestamp
