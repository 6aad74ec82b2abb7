# config.py
import logging
import os
from dataclasses import dataclass, field
from typing import Dict

from dotenv import load_dotenv

from engine.windowing import AlertTimeframeConfig

load_dotenv()

log = logging.getLogger(__name__)


def parse_overrides(raw: str | None) -> Dict[str, float]:
    """
    "15m=15,1h=60" -> {"15m": 15.0, "1h": 60.0}. Bad pairs are skipped.
    """
    overrides: Dict[str, float] = {}
    for part in (raw or "").split(","):
        label, sep, minutes = part.partition("=")
        if not sep or not label.strip():
            continue
        try:
            overrides[label.strip()] = float(minutes)
        except ValueError:
            log.warning("Ignoring bad ALERT_WINDOW_OVERRIDES entry: %r", part)
    return overrides


@dataclass
class Settings:
    api_base: str
    api_token: str | None = None

    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None

    poll_interval_seconds: int = 30

    # Recent-alert buffer handed to the engine
    alert_limit: int = 50

    # Alert retention windows (minutes)
    alert_window_default_minutes: float = 30.0
    alert_window_overrides: Dict[str, float] = field(default_factory=dict)

    # Backend summary lookback for lastAction (minutes)
    score_time_window: int = 60

    # Dedup / throttling
    min_alert_interval_seconds: int = 600

    def alert_timeframes(self) -> AlertTimeframeConfig:
        return AlertTimeframeConfig(
            global_default=self.alert_window_default_minutes,
            overrides=self.alert_window_overrides,
        )


def get_settings() -> Settings:
    api_base = os.getenv("SCORING_API_BASE")
    if not api_base:
        raise RuntimeError("Missing SCORING_API_BASE env variable")

    return Settings(
        api_base=api_base,
        api_token=os.getenv("SCORING_API_TOKEN"),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
        telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID"),
        poll_interval_seconds=int(os.getenv("POLL_INTERVAL_SECONDS", "30")),
        alert_limit=int(os.getenv("ALERT_LIMIT", "50")),
        alert_window_default_minutes=float(os.getenv("ALERT_WINDOW_DEFAULT_MINUTES", "30")),
        alert_window_overrides=parse_overrides(os.getenv("ALERT_WINDOW_OVERRIDES")),
        score_time_window=int(os.getenv("SCORE_TIME_WINDOW", "60")),
        min_alert_interval_seconds=int(os.getenv("MIN_ALERT_INTERVAL_SECONDS", "600")),
    )
