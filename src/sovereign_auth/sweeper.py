"""
Background expiry sweeps.

A daemon thread that periodically calls ``sweep()`` on each registered
store. Sweeps take the store's own lock, exactly like foreground calls,
so a sweep racing a consume leaves the loser seeing "not found".
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional, Protocol

import attrs
import structlog

logger = structlog.get_logger()


class Sweepable(Protocol):
    def sweep(self) -> int:
        ...


@attrs.define
class Sweeper:
    """
    Periodic sweep task.

    Example:
        sweeper = Sweeper(stores={"nonces": nonce_store, "sessions": session_store})
        sweeper.start()
        ...
        sweeper.stop()
    """

    stores: Dict[str, Sweepable] = attrs.Factory(dict)
    interval: float = 60.0

    _thread: Optional[threading.Thread] = None
    _stop_event: threading.Event = attrs.Factory(threading.Event)
    _runs: int = 0
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def runs(self) -> int:
        """Completed sweep passes."""
        return self._runs

    def start(self) -> bool:
        """
        Start the sweep thread.

        Returns:
            True if started, False if it was already running
        """
        if self.is_running:
            self._logger.warning("sweeper_already_running")
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop,
            name="SovereignAuthSweeper",
            daemon=True,
        )
        self._thread.start()

        self._logger.info(
            "sweeper_started",
            interval_seconds=self.interval,
            stores=sorted(self.stores),
        )
        return True

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the thread and wait for it to exit."""
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None

        self._logger.info("sweeper_stopped", runs=self._runs)

    def sweep_once(self) -> Dict[str, int]:
        """
        Sweep every store once, in the calling thread.

        A failing store is logged and skipped; the others still run.

        Returns:
            Mapping of store name to number of entries removed
        """
        removed: Dict[str, int] = {}
        for name, store in self.stores.items():
            try:
                removed[name] = store.sweep()
            except Exception as e:
                self._logger.error("sweep_failed", store=name, error=str(e))
                removed[name] = 0

        self._runs += 1
        if any(removed.values()):
            self._logger.debug("sweep_completed", removed=removed)
        return removed

    def _sweep_loop(self) -> None:
        """Background thread body."""
        while not self._stop_event.wait(timeout=self.interval):
            self.sweep_once()
