"""
utils/refresh.py
Auto-refresh loop: re-runs the start cycle a fixed delay after each completed
cycle while live monitoring is switched on.

States
------
IDLE    : nothing scheduled
ARMED   : one timer pending
RUNNING : the timer fired and a cycle is in progress
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from config.settings import AUTO_REFRESH_SECONDS
from models.session import SessionState

logger = logging.getLogger(__name__)

# Edits after which a pending refresh must be rebuilt against fresh state.
REARM_CHANGES = frozenset({"mode", "target", "screener", "settings", "credential"})


class RefreshStatus(str, Enum):
    IDLE    = "IDLE"
    ARMED   = "ARMED"
    RUNNING = "RUNNING"


class AutoRefreshLoop:
    """
    Cancellable scheduled re-run of ``run_cycle(state)``.

    Usage
    -----
    loop = AutoRefreshLoop(state, start_cycle)
    loop.attach()          # follow state changes
    state.set_auto_refresh(True)

    ``timer_factory`` must build an object with ``start()`` and ``cancel()``
    from ``(interval, function, args=...)``, like ``threading.Timer``.

    ``alive`` reports whether the owner (a browser session) still exists.
    Once it returns False the loop detaches itself instead of running or
    re-arming, so an abandoned session stops issuing requests.
    """

    def __init__(
        self,
        state:         SessionState,
        run_cycle:     Callable[[SessionState], object],
        *,
        interval:      float = AUTO_REFRESH_SECONDS,
        timer_factory: Callable = threading.Timer,
        alive:         Callable[[], bool] = lambda: True,
    ):
        self.state          = state
        self.run_cycle      = run_cycle
        self.interval       = interval
        self.timer_factory  = timer_factory
        self.alive          = alive
        self.status         = RefreshStatus.IDLE
        self._timer         = None
        self._generation    = 0
        self._lock          = threading.RLock()
        self._attached      = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ── Wiring ────────────────────────────────────────────────────────────
    def attach(self) -> Callable[[], None]:
        self.detach()
        self._unsubscribe = self.state.subscribe(self._on_change)
        self._attached = True
        self.sync()
        return self.detach

    def detach(self):
        self._attached = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel()

    @property
    def should_arm(self) -> bool:
        s = self.state
        return s.auto_refresh and not s.busy and bool(s.result_text)

    # ── Timer control ─────────────────────────────────────────────────────
    def arm(self):
        """Schedule the next cycle, replacing any pending timer."""
        with self._lock:
            self._cancel_timer()
            generation = self._generation
            timer = self.timer_factory(self.interval, self._fire, args=(generation,))
            timer.daemon = True
            self._timer = timer
            self.status = RefreshStatus.ARMED
            timer.start()
        logger.info("Auto-refresh armed: next cycle in %.0fs", self.interval)

    def cancel(self):
        with self._lock:
            had_timer = self._timer is not None
            self._cancel_timer()
            self.status = RefreshStatus.IDLE
        if had_timer:
            logger.info("Auto-refresh cancelled")

    def _cancel_timer(self):
        # Bumping the generation also invalidates a timer that is mid-fire.
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def sync(self):
        """Arm or idle according to the current state; a running cycle is left alone."""
        with self._lock:
            if not self._attached or self.status is RefreshStatus.RUNNING:
                return
            if self.should_arm:
                if self.status is not RefreshStatus.ARMED:
                    self.arm()
            else:
                self.cancel()

    # ── Callbacks ─────────────────────────────────────────────────────────
    def _fire(self, generation: int):
        with self._lock:
            if generation != self._generation or self.status is not RefreshStatus.ARMED:
                logger.debug("Ignoring stale auto-refresh timer")
                return
            self._timer = None
            if not self.alive():
                logger.info("Auto-refresh owner is gone; detaching")
                self.detach()
                return
            self.status = RefreshStatus.RUNNING

        logger.info("Auto-refresh firing")
        try:
            self.run_cycle(self.state)
        finally:
            with self._lock:
                if self.status is RefreshStatus.RUNNING:
                    self.status = RefreshStatus.IDLE
                if self._attached and not self.alive():
                    logger.info("Auto-refresh owner is gone; detaching")
                    self.detach()
                self.sync()

    def _on_change(self, state: SessionState, change: str):
        if change == "auto_refresh" and not state.auto_refresh:
            self.cancel()
            return
        if change in REARM_CHANGES:
            with self._lock:
                if self.status is RefreshStatus.RUNNING:
                    return
                self.cancel()
                self.sync()
            return
        if change in ("auto_refresh", "busy", "cycle"):
            self.sync()
