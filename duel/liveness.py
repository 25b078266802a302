"""Opponent liveness: staleness threshold and the optional background sweep.

Timeouts are detected lazily. A player is only found to be gone when the
other player polls ``get_state``; if nobody polls, a dead session stays in the
store. ``StaleSessionSweeper`` is an opt-in extension that runs the same
check periodically for every stored session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manager import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000


@dataclass(frozen=True)
class LivenessPolicy:
    """How long a player may stay silent before being treated as gone."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive.")

    @property
    def timeout(self) -> timedelta:
        return timedelta(milliseconds=self.timeout_ms)

    def is_stale(self, last_ping: datetime | None, now: datetime) -> bool:
        """An unset ping belongs to an empty slot and is never stale."""
        if last_ping is None:
            return False
        return now - last_ping > self.timeout


class StaleSessionSweeper:
    """Daemon thread calling ``SessionManager.sweep_stale`` every interval."""

    def __init__(self, manager: "SessionManager", interval_s: float) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive.")
        self.manager = manager
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="stale-session-sweeper", daemon=True)
        self._thread.start()
        logger.info("Stale-session sweeper started (every %.1fs).", self.interval_s)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Stale-session sweeper stopped.")

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.manager.sweep_stale()
            except Exception:
                # Keep sweeping; the next pass sees a fresh store snapshot.
                logger.exception("Stale-session sweep failed.")
