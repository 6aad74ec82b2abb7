"""Shared fixtures for the scoring engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from engine.models import Alert, RuleGroup, RuleRef, Strategy

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_alert():
    """Build an Alert timestamped `age` before NOW."""
    counter = {"n": 0}

    def _make(
        ticker="BTC",
        indicator="Nautilus™",
        trigger="Normal Bullish Divergence",
        weight=1.0,
        timeframe="15m",
        age=timedelta(minutes=1),
        **extra,
    ):
        counter["n"] += 1
        timestamp = extra.pop("timestamp", (NOW - age).isoformat())
        return Alert(
            id=extra.pop("id", f"a{counter['n']}"),
            ticker=ticker,
            indicator=indicator,
            trigger=trigger,
            weight=weight,
            timeframe=timeframe,
            timestamp=timestamp,
            **extra,
        )

    return _make


@pytest.fixture
def and_group():
    return RuleGroup(
        operator="AND",
        requirements=(
            RuleRef("Nautilus™", "Normal Bullish Divergence"),
            RuleRef("Extreme Zones", "Discount Zone"),
        ),
    )


@pytest.fixture
def or_group():
    return RuleGroup(
        operator="OR",
        requirements=(
            RuleRef("Market Waves Pro™", "Buy"),
            RuleRef("Market Waves Pro™", "Buy+"),
        ),
    )


@pytest.fixture
def make_strategy():
    def _make(name="Buy on discount zone", rule_groups=(), rules=(), enabled=True, threshold=0.0, timeframe=15):
        return Strategy(
            name=name,
            enabled=enabled,
            threshold=threshold,
            timeframe=timeframe,
            rules=tuple(rules),
            rule_groups=tuple(rule_groups),
        )

    return _make
