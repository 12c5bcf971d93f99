"""
models/session.py
Session state for the analysis workbench: user selections, in-flight status,
streamed report text and the last error.

All mutation goes through the named update operations on SessionState so
that every change is observable by subscribers (render surface, credential
persistence, auto-refresh loop).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Callable, Optional

from config.catalog import DEFAULT_SECTOR, DEFAULT_STYLE
from config.settings import (
    DEEP_LEVEL_THRESHOLD, DEFAULT_DEEP_MODEL, DEFAULT_FAST_MODEL, DEFAULT_STOCK_CODE,
)
from utils.dates import market_today_iso

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    ANALYSIS = "ANALYSIS"
    SCREENER = "SCREENER"


class MarketType(str, Enum):
    A_SHARE  = "A_SHARE"
    HK_SHARE = "HK_SHARE"
    US_SHARE = "US_SHARE"


class AnalysisLevel(IntEnum):
    L1_QUICK         = 1
    L2_BASIC         = 2
    L3_STANDARD      = 3
    L4_DEEP          = 4
    L5_COMPREHENSIVE = 5

    @property
    def is_deep(self) -> bool:
        return self >= DEEP_LEVEL_THRESHOLD


class AnalystRole(str, Enum):
    """Analyst personas, declared in the order their prompt blocks appear."""

    MARKET        = "MARKET"
    FUNDAMENTAL   = "FUNDAMENTAL"
    INSTITUTIONAL = "INSTITUTIONAL"
    TECHNICAL     = "TECHNICAL"
    EVENT         = "EVENT"
    SOCIAL        = "SOCIAL"


DEFAULT_ROLES = frozenset({
    AnalystRole.MARKET, AnalystRole.FUNDAMENTAL,
    AnalystRole.INSTITUTIONAL, AnalystRole.EVENT,
})


# ── Value objects ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StockTarget:
    code:   str        = DEFAULT_STOCK_CODE
    market: MarketType = MarketType.A_SHARE
    date:   str        = field(default_factory=market_today_iso)

    def __post_init__(self):
        object.__setattr__(self, "market", MarketType(self.market))


@dataclass(frozen=True)
class ScreenerCriteria:
    sector: str = DEFAULT_SECTOR
    style:  str = DEFAULT_STYLE


@dataclass(frozen=True)
class AnalysisSettings:
    level:             AnalysisLevel          = AnalysisLevel.L3_STANDARD
    roles:             frozenset[AnalystRole] = DEFAULT_ROLES
    include_sentiment: bool                   = True
    include_risk:      bool                   = True
    fast_model:        str                    = DEFAULT_FAST_MODEL
    deep_model:        str                    = DEFAULT_DEEP_MODEL

    def __post_init__(self):
        if not self.roles:
            raise ValueError("At least one analyst role must be enabled")
        object.__setattr__(self, "level", AnalysisLevel(self.level))
        object.__setattr__(self, "roles", frozenset(AnalystRole(r) for r in self.roles))

    @property
    def ordered_roles(self) -> list[AnalystRole]:
        return [r for r in AnalystRole if r in self.roles]

    def toggle_role(self, role: AnalystRole) -> "AnalysisSettings":
        """
        Return settings with ``role`` flipped.

        Removing the last enabled role is refused (settings returned unchanged).
        Enabling SOCIAL pulls in FUNDAMENTAL; disabling SOCIAL later leaves
        FUNDAMENTAL alone.
        """
        role = AnalystRole(role)
        if role in self.roles:
            if len(self.roles) <= 1:
                return self
            return replace(self, roles=self.roles - {role})

        roles = set(self.roles) | {role}
        if role is AnalystRole.SOCIAL:
            roles.add(AnalystRole.FUNDAMENTAL)
        return replace(self, roles=frozenset(roles))


# ── Session ───────────────────────────────────────────────────────────────────

Listener = Callable[["SessionState", str], None]


@dataclass
class SessionState:
    mode:         Mode             = Mode.ANALYSIS
    stock:        StockTarget      = field(default_factory=StockTarget)
    screener:     ScreenerCriteria = field(default_factory=ScreenerCriteria)
    analysis:     AnalysisSettings = field(default_factory=AnalysisSettings)
    api_key:      str              = ""
    busy:         bool             = False
    auto_refresh: bool             = False
    result_text:  str              = ""
    error:        Optional[str]    = None

    _listeners: list = field(default_factory=list, init=False, repr=False, compare=False)
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False, compare=False,
    )

    # ── Observers ─────────────────────────────────────────────────────────
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(state, change)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: str):
        for listener in list(self._listeners):
            listener(self, change)

    def _apply(self, change: str, **values) -> bool:
        with self._lock:
            if all(getattr(self, name) == value for name, value in values.items()):
                return False
            for name, value in values.items():
                setattr(self, name, value)
        self._notify(change)
        return True

    def snapshot(self) -> "SessionState":
        """Detached copy without subscribers; nested values are immutable."""
        with self._lock:
            return SessionState(
                mode=self.mode,
                stock=self.stock,
                screener=self.screener,
                analysis=self.analysis,
                api_key=self.api_key,
                busy=self.busy,
                auto_refresh=self.auto_refresh,
                result_text=self.result_text,
                error=self.error,
            )

    # ── User edits ────────────────────────────────────────────────────────
    def _replace(self, change: str, name: str, **changes) -> bool:
        with self._lock:
            current = getattr(self, name)
            updated = replace(current, **changes)
            if updated == current:
                return False
            setattr(self, name, updated)
        self._notify(change)
        return True

    def set_mode(self, mode: Mode) -> bool:
        return self._apply("mode", mode=Mode(mode))

    def update_target(self, **changes) -> bool:
        return self._replace("target", "stock", **changes)

    def update_screener(self, **changes) -> bool:
        return self._replace("screener", "screener", **changes)

    def update_settings(self, **changes) -> bool:
        return self._replace("settings", "analysis", **changes)

    def toggle_role(self, role: AnalystRole) -> bool:
        with self._lock:
            updated = self.analysis.toggle_role(role)
            refused = updated is self.analysis
            if not refused:
                self.analysis = updated
        if refused:
            logger.info("Ignoring request to disable the last analyst role (%s)", role)
            return False
        self._notify("settings")
        return True

    def set_credential(self, api_key: str) -> bool:
        return self._apply("credential", api_key=api_key or "")

    def set_auto_refresh(self, enabled: bool) -> bool:
        return self._apply("auto_refresh", auto_refresh=bool(enabled))

    # ── Cycle bookkeeping ─────────────────────────────────────────────────
    def begin_cycle(self) -> bool:
        """
        Claim the session for a new cycle and clear the previous result and
        error. Returns False, changing nothing, when a cycle is already running.
        """
        with self._lock:
            if self.busy:
                return False
            self.busy        = True
            self.result_text = ""
            self.error       = None
        self._notify("cycle")
        return True

    def append_fragment(self, text: str):
        if not text:
            return
        with self._lock:
            self.result_text += text
        self._notify("fragment")

    def set_error(self, message: Optional[str]) -> bool:
        return self._apply("error", error=message)

    def set_busy(self, busy: bool) -> bool:
        return self._apply("busy", busy=bool(busy))
