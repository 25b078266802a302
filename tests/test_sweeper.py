"""Tests for the opt-in background sweep of stale sessions."""

from __future__ import annotations

import threading

import pytest

from duel import Role, SessionNotFoundError, StaleSessionSweeper


def test_sweep_stale_applies_liveness_to_every_session(manager, clock) -> None:
    abandoned = manager.create_session("Alice").code
    manager.join_session(abandoned, "Bob")
    lonely_host = manager.create_session("Carol").code
    clock.advance(4000)
    guest_gone = manager.create_session("Dave").code
    manager.join_session(guest_gone, "Eve")
    clock.advance(2000)
    manager.get_state(guest_gone, Role.HOST)
    clock.advance(4000)

    # abandoned: both silent 10s; lonely_host: host silent 10s;
    # guest_gone: host polled 4s ago, guest silent 6s.
    deleted, evicted = manager.sweep_stale()

    assert (deleted, evicted) == (2, 1)
    for code in (abandoned, lonely_host):
        with pytest.raises(SessionNotFoundError):
            manager.get_session(code)
    assert manager.get_session(guest_gone).guest_nickname is None


def test_sweeper_thread_runs_until_stopped(manager) -> None:
    swept = threading.Event()
    original = manager.sweep_stale

    def _sweep():
        result = original()
        swept.set()
        return result

    manager.sweep_stale = _sweep
    sweeper = StaleSessionSweeper(manager, interval_s=0.01)
    sweeper.start()
    try:
        assert swept.wait(timeout=5)
        assert sweeper.running
    finally:
        sweeper.stop(timeout=5)
    assert not sweeper.running


def test_sweeper_rejects_non_positive_interval(manager) -> None:
    with pytest.raises(ValueError):
        StaleSessionSweeper(manager, interval_s=0)
