"""
Unit tests for sovereign_auth.sweeper module.
"""

import time

import pytest

from sovereign_auth.sweeper import Sweeper


class CountingStore:
    def __init__(self, removed=0):
        self.calls = 0
        self.removed = removed

    def sweep(self):
        self.calls += 1
        return self.removed


class BrokenStore:
    def sweep(self):
        raise RuntimeError("lock poisoned")


class TestSweepOnce:
    """Tests for Sweeper.sweep_once."""

    def test_sweeps_real_stores(self, nonce_store, session_store, clock):
        nonce_store.issue("0xabc")
        session_store.create("0xabc", "1")
        clock.advance(days=2)

        sweeper = Sweeper(stores={"nonces": nonce_store, "sessions": session_store})
        assert sweeper.sweep_once() == {"nonces": 1, "sessions": 1}
        assert sweeper.sweep_once() == {"nonces": 0, "sessions": 0}
        assert sweeper.runs == 2

    def test_failing_store_does_not_stop_others(self):
        healthy = CountingStore(removed=3)
        sweeper = Sweeper(stores={"broken": BrokenStore(), "healthy": healthy})

        assert sweeper.sweep_once() == {"broken": 0, "healthy": 3}
        assert healthy.calls == 1


class TestBackgroundThread:
    """Tests for Sweeper.start / stop."""

    @pytest.mark.slow
    def test_runs_periodically(self):
        store = CountingStore()
        sweeper = Sweeper(stores={"s": store}, interval=0.01)

        assert sweeper.start() is True
        try:
            deadline = time.monotonic() + 2.0
            while store.calls < 3 and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            sweeper.stop()

        assert store.calls >= 3
        assert not sweeper.is_running

    def test_start_twice(self):
        sweeper = Sweeper(stores={}, interval=30.0)
        assert sweeper.start() is True
        try:
            assert sweeper.start() is False
        finally:
            sweeper.stop()

    def test_stop_without_start(self):
        Sweeper().stop()

    def test_restart_after_stop(self):
        sweeper = Sweeper(interval=30.0)
        sweeper.start()
        sweeper.stop()
        assert sweeper.start() is True
        assert sweeper.is_running
        sweeper.stop()
