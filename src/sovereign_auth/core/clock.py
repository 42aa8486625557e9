"""
Clock capability.

Stores never call ``datetime.now`` directly; they ask an injected clock,
so expiry can be tested at exact millisecond boundaries.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

import attrs


class Clock(ABC):
    """Source of timezone-aware UTC wall-clock time."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Real UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@attrs.define
class FrozenClock(Clock):
    """
    Manually advanced clock for tests and simulations.

    Example:
        clock = FrozenClock()
        store = NonceStore(clock=clock)
        clock.advance(minutes=5)
    """

    current: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))
    _lock: threading.Lock = attrs.field(factory=threading.Lock, alias="_lock")

    def now(self) -> datetime:
        with self._lock:
            return self.current

    def advance(
        self,
        delta: Optional[timedelta] = None,
        **kwargs: float,
    ) -> datetime:
        """Move time forward by ``delta`` or by ``timedelta(**kwargs)``."""
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self.current = self.current + step
            return self.current

    def set(self, value: datetime) -> None:
        with self._lock:
            self.current = value
