"""Unit tests for SessionSweeper."""

from __future__ import annotations

import logging
import threading

import pytest
from authcore.infra.workers.sweeper import SessionSweeper


def test_tick_returns_count():
    sweeper = SessionSweeper(lambda: 3, interval=60)
    assert sweeper.tick() == 3


def test_tick_swallows_and_logs_errors(caplog):
    def failing() -> int:
        raise RuntimeError("db gone")

    sweeper = SessionSweeper(failing, interval=60)
    with caplog.at_level(logging.ERROR, logger="authcore.infra.workers.sweeper"):
        assert sweeper.tick() == 0
    assert any(r.getMessage() == "sessions.sweep_failed" for r in caplog.records)


def test_background_thread_runs_until_stopped():
    calls = threading.Event()
    count = {"n": 0}

    def sweep() -> int:
        count["n"] += 1
        calls.set()
        return 0

    sweeper = SessionSweeper(sweep, interval=0.01)
    sweeper.start()
    try:
        assert calls.wait(5)
        assert sweeper.running
    finally:
        sweeper.stop()
    assert not sweeper.running
    assert count["n"] >= 1


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        SessionSweeper(lambda: 0, interval=0)
