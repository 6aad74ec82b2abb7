# engine/models.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

log = logging.getLogger(__name__)

Action = Literal["Buy", "Sell"]
Operator = Literal["AND", "OR"]

# Unparseable timestamps sort as the oldest possible time, so windowing
# treats them as already expired.
OLDEST = datetime.min.replace(tzinfo=timezone.utc)

QUOTE_SUFFIXES = ("USDT", "USDC", "USD")

DEFAULT_TIMEFRAME = "15m"


def normalize_ticker(ticker: Optional[str]) -> str:
    """
    Upper-case a ticker and strip a trailing quote currency.

    "btcusd" -> "BTC", "ETHUSDT" -> "ETH". A bare "USD" stays "USD".
    """
    symbol = (ticker or "").strip().upper()
    for suffix in QUOTE_SUFFIXES:
        if symbol.endswith(suffix) and len(symbol) > len(suffix):
            return symbol[: -len(suffix)]
    return symbol


def parse_time(value: Any) -> datetime:
    """
    Parse an alert time into an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), ISO-8601 strings
    (a trailing "Z" is fine) and epoch seconds. Anything else returns
    OLDEST rather than raising.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return OLDEST
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return OLDEST
    else:
        return OLDEST

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _load_json_list(value: Any) -> List[Any]:
    """Rules and rule groups may come back from the store as JSON text."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            log.debug("Ignoring unparseable rule payload: %r", value[:80])
            return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


@dataclass(frozen=True)
class Alert:
    """
    One observed indicator signal for a ticker.

    id         – opaque identifier from the store
    ticker     – normalized symbol ("BTC", not "btcusd")
    timeframe  – chart timeframe label as sent ("15", "15m", "1h", ...)
    indicator  – emitting indicator, compact code or display name
    trigger    – named event within that indicator
    weight     – signed score contribution
    time       – display/fallback time
    timestamp  – authoritative ISO time when present
    """

    ticker: str
    indicator: str
    trigger: str
    timeframe: str = DEFAULT_TIMEFRAME
    weight: float = 0.0
    id: str = ""
    time: Optional[str] = None
    timestamp: Optional[str] = None
    price: Optional[float] = None

    @property
    def raw_time(self) -> Optional[str]:
        return self.timestamp or self.time

    @property
    def parsed_time(self) -> datetime:
        return parse_time(self.raw_time)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        weights: Optional[Mapping[Tuple[str, str], float]] = None,
    ) -> "Alert":
        indicator = str(data.get("indicator") or "")
        trigger = str(data.get("trigger") or "")

        weight = data.get("weight")
        if weight is None and weights is not None:
            weight = weights.get((indicator, trigger), 0.0)

        timestamp = data.get("timestamp")
        time = data.get("time")
        price = data.get("price")

        return cls(
            id=str(data.get("id") or ""),
            ticker=normalize_ticker(data.get("ticker")),
            timeframe=str(data.get("timeframe") or DEFAULT_TIMEFRAME),
            indicator=indicator,
            trigger=trigger,
            weight=_float(weight),
            time=str(time) if time is not None else None,
            timestamp=str(timestamp) if timestamp is not None else None,
            price=_float(price) if price is not None else None,
        )


@dataclass(frozen=True)
class RuleRef:
    """A required (indicator, trigger) pair."""

    indicator: str
    trigger: str


@dataclass(frozen=True)
class RuleGroup:
    operator: Operator
    requirements: Tuple[RuleRef, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RuleGroup":
        operator: Operator = "OR" if str(data.get("operator") or "").upper() == "OR" else "AND"
        alerts = data.get("alerts")
        if not isinstance(alerts, (list, tuple)):
            # malformed group: no requirements, never satisfied
            return cls(operator=operator)

        requirements = tuple(
            RuleRef(
                indicator=str(a.get("indicator") or ""),
                trigger=str(a.get("name") or a.get("trigger") or ""),
            )
            for a in alerts
            if isinstance(a, Mapping)
        )
        return cls(operator=operator, requirements=requirements)


@dataclass(frozen=True)
class Strategy:
    """
    A user-authored matching rule.

    Either `rule_groups` (structured, AND/OR per group, any group may
    satisfy the strategy) or the legacy flat `rules` list (all must
    match). Groups take precedence when both are present.
    """

    name: str
    enabled: bool = True
    id: str = ""
    timeframe: Optional[float] = None
    threshold: float = 0.0
    rules: Tuple[RuleRef, ...] = ()
    rule_groups: Tuple[RuleGroup, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Strategy":
        rules = tuple(
            RuleRef(indicator=str(r.get("indicator") or ""), trigger=str(r.get("trigger") or ""))
            for r in _load_json_list(data.get("rules"))
            if isinstance(r, Mapping)
        )

        raw_groups = data.get("rule_groups")
        if raw_groups is None:
            raw_groups = data.get("ruleGroups")
        rule_groups = tuple(
            RuleGroup.from_dict(g) if isinstance(g, Mapping) else RuleGroup(operator="AND")
            for g in _load_json_list(raw_groups)
        )

        timeframe = data.get("timeframe")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            enabled=bool(data.get("enabled", True)),
            timeframe=_float(timeframe, 0.0) if timeframe is not None else None,
            threshold=_float(data.get("threshold")),
            rules=rules,
            rule_groups=rule_groups,
        )

    @property
    def timeframe_label(self) -> str:
        if self.timeframe is None:
            return ""
        minutes = self.timeframe
        return f"{int(minutes)}m" if float(minutes).is_integer() else f"{minutes}m"


@dataclass(frozen=True)
class StrategyMatch:
    """A strategy completed for one ticker (live path)."""

    strategy: Strategy
    ticker: str
    found: Tuple[Alert, ...]
    score: float
    action: Action
    timestamp: Optional[str] = None

    @property
    def triggers(self) -> List[str]:
        return [a.trigger for a in self.found]


@dataclass
class TickerScore:
    """
    One display row for a (strategy, ticker) pair.

    missing_alerts lists unmet requirements in the synchronized view;
    in the live view it carries the resolved action label instead
    ("Buy triggered" / "Sell triggered").
    """

    strategy: str
    ticker: str
    timeframe: str
    timestamp: Optional[str]
    alerts_found: List[str] = field(default_factory=list)
    missing_alerts: List[str] = field(default_factory=list)
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "ticker": self.ticker,
            "timeframe": self.timeframe,
            "timestamp": self.timestamp,
            "alertsFound": list(self.alerts_found),
            "missingAlerts": list(self.missing_alerts),
            "score": self.score,
        }


@dataclass(frozen=True)
class LastAction:
    action: str
    ticker: str
    strategy: str

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "ticker": self.ticker, "strategy": self.strategy}


@dataclass
class ScoringResult:
    ticker_data: List[TickerScore] = field(default_factory=list)
    last_action: Optional[LastAction] = None
    matches: List[StrategyMatch] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tickerData": [row.to_dict() for row in self.ticker_data],
            "lastAction": self.last_action.to_dict() if self.last_action else None,
        }
