# engine/alerting.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import requests

from engine.models import StrategyMatch

log = logging.getLogger(__name__)


@dataclass
class TelegramConfig:
    bot_token: str
    chat_id: str


def send_telegram_message(
    cfg: TelegramConfig,
    text: str,
    parse_mode: str = "HTML",
) -> bool:
    """
    Fire-and-forget Telegram send. Returns whether the API accepted it.
    """
    if not cfg.bot_token or not cfg.chat_id:
        log.debug("TelegramConfig missing bot_token or chat_id, skipping send.")
        return False

    url = f"https://api.telegram.org/bot{cfg.bot_token}/sendMessage"
    payload = {
        "chat_id": cfg.chat_id,
        "text": text,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        resp = requests.post(url, json=payload, timeout=5)
        resp.raise_for_status()
    except Exception as exc:  # noqa: BLE001
        log.warning("Failed to send Telegram message: %s", exc)
        return False
    return True


def format_action_message(match: StrategyMatch, when: Optional[datetime] = None) -> str:
    """
    Detailed BUY/SELL message for a completed strategy.
    """
    when = when or datetime.now(timezone.utc)
    is_buy = match.action == "Buy"
    emoji = "🟢" if is_buy else "🔴"
    title = "BUY SIGNAL" if is_buy else "SELL SIGNAL"
    sign = "+" if match.score > 0 else ""

    lines = [
        f"{emoji} <b>{title}</b>",
        "━━━━━━━━━━━━━━━",
        f"💎 <b>Ticker:</b> {match.ticker}",
        f"⏰ <b>Time:</b> {when.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        f"🧠 <b>Strategy:</b> {match.strategy.name}",
    ]
    if match.triggers:
        lines.append("🎯 <b>Triggers:</b>")
        lines.extend(f"  • {t}" for t in match.triggers)
    lines.append(f"📊 <b>Score:</b> {sign}{match.score}")
    return "\n".join(lines)


@dataclass
class ActionDispatcher:
    """
    Sends completed strategies to Telegram, with throttling.

    - tg_config: Telegram bot/chat config
    - min_alert_interval_seconds: minimum seconds between messages for the
      same (strategy, ticker, action) triple.
    """

    tg_config: TelegramConfig
    min_alert_interval_seconds: int = 600
    _last_sent: Dict[Tuple[str, str, str], float] = field(default_factory=dict)

    def dispatch(self, match: StrategyMatch) -> bool:
        key = (match.strategy.name, match.ticker, match.action)
        now = time.time()
        last_ts = self._last_sent.get(key)

        if last_ts is not None and (now - last_ts) < self.min_alert_interval_seconds:
            log.debug(
                "ActionDispatcher: skipping %s %s %s due to throttle (%ss < %ss)",
                match.action,
                match.ticker,
                match.strategy.name,
                int(now - last_ts),
                self.min_alert_interval_seconds,
            )
            return False

        sent = send_telegram_message(self.tg_config, format_action_message(match))
        if sent:
            self._last_sent[key] = now
        return sent
