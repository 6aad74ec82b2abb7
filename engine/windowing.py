# engine/windowing.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from engine.models import Alert
from engine.timeframes import DEFAULT_SCALE, TimeframeScale

log = logging.getLogger(__name__)

FADE_GRACE = timedelta(seconds=30)

DEFAULT_WINDOW_MINUTES = 30.0


class AlertState(str, Enum):
    LIVE = "live"
    EXPIRING = "expiring"
    EXPIRED = "expired"


@dataclass(frozen=True)
class AlertTimeframeConfig:
    """
    Retention windows, in minutes, per timeframe.

    - global_default: window for any timeframe without an override
    - overrides:      timeframe label -> minutes; keys are normalized on
                      construction so "15" and "15m" share one entry
    """

    global_default: float = DEFAULT_WINDOW_MINUTES
    overrides: Mapping[str, float] = field(default_factory=dict)
    scale: TimeframeScale = DEFAULT_SCALE

    def __post_init__(self) -> None:
        normalized: Dict[str, float] = {}
        for label, minutes in dict(self.overrides).items():
            normalized[self.scale.normalize(str(label))] = float(minutes)
        object.__setattr__(self, "overrides", normalized)

    @classmethod
    def from_dict(cls, data: Mapping) -> "AlertTimeframeConfig":
        return cls(
            global_default=float(data.get("globalDefault", DEFAULT_WINDOW_MINUTES)),
            overrides=dict(data.get("overrides") or {}),
        )

    def window_for(self, timeframe: str) -> timedelta:
        key = self.scale.normalize(timeframe)
        # a zero or missing override falls back to the global default
        minutes = self.overrides.get(key) or self.global_default
        return timedelta(minutes=minutes)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _age(alert: Alert, now: datetime) -> timedelta:
    # OLDEST minus an aware "now" cannot overflow, it is just very large
    return now - alert.parsed_time


def classify(
    alert: Alert,
    config: Optional[AlertTimeframeConfig],
    now: Optional[datetime] = None,
) -> AlertState:
    if config is None:
        return AlertState.LIVE

    now = _now(now)
    window = config.window_for(alert.timeframe)
    age = _age(alert, now)

    if age > window:
        return AlertState.EXPIRED
    if age > window - FADE_GRACE:
        return AlertState.EXPIRING
    return AlertState.LIVE


def filter_live(
    alerts: Sequence[Alert],
    config: Optional[AlertTimeframeConfig],
    now: Optional[datetime] = None,
) -> Sequence[Alert]:
    """
    Drop expired alerts, keeping input order.

    With no config (or nothing to filter) the input comes back as-is;
    windowing is opt-in.
    """
    if config is None or not alerts:
        return alerts

    now = _now(now)
    live = [a for a in alerts if classify(a, config, now) is not AlertState.EXPIRED]
    if len(live) != len(alerts):
        log.debug("filter_live: %d of %d alerts expired", len(alerts) - len(live), len(alerts))
    return live


def expiring_alerts(
    alerts: Sequence[Alert],
    config: Optional[AlertTimeframeConfig],
    now: Optional[datetime] = None,
) -> List[Alert]:
    """Alerts inside the last 30 seconds of their window, for fading."""
    if config is None or not alerts:
        return []
    now = _now(now)
    return [a for a in alerts if classify(a, config, now) is AlertState.EXPIRING]


def time_until_expiry(
    alert: Alert,
    config: Optional[AlertTimeframeConfig],
    now: Optional[datetime] = None,
) -> str:
    if config is None:
        return "Unknown"

    now = _now(now)
    remaining = config.window_for(alert.timeframe) - _age(alert, now)
    if remaining <= timedelta(0):
        return "Expired"

    total_seconds = int(remaining.total_seconds())
    minutes, seconds = divmod(total_seconds, 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
