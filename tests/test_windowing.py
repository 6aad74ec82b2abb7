"""Tests for alert retention windows and expiry display."""

from datetime import timedelta

import pytest

from engine.windowing import (
    AlertState,
    AlertTimeframeConfig,
    classify,
    expiring_alerts,
    filter_live,
    time_until_expiry,
)


@pytest.fixture
def config():
    return AlertTimeframeConfig(global_default=30, overrides={"15m": 15})


class TestClassify:
    """live / expiring / expired relative to now"""

    def test_fourteen_minutes_is_live(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=14))
        assert classify(alert, config, now) is AlertState.LIVE

    def test_sixteen_minutes_is_expired(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=16))
        assert classify(alert, config, now) is AlertState.EXPIRED

    def test_last_thirty_seconds_is_expiring(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=14, seconds=45))
        assert classify(alert, config, now) is AlertState.EXPIRING

    def test_exactly_at_window_is_expiring(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=15))
        assert classify(alert, config, now) is AlertState.EXPIRING

    def test_global_default_applies_without_override(self, make_alert, config, now):
        alert = make_alert(timeframe="1h", age=timedelta(minutes=20))
        assert classify(alert, config, now) is AlertState.LIVE

    def test_override_keys_are_normalized(self, make_alert, now):
        config = AlertTimeframeConfig(global_default=60, overrides={"15": 15})
        alert = make_alert(timeframe="15min", age=timedelta(minutes=16))
        assert classify(alert, config, now) is AlertState.EXPIRED

    def test_unparseable_time_is_expired(self, make_alert, config, now):
        alert = make_alert(timestamp="not a time")
        assert classify(alert, config, now) is AlertState.EXPIRED

    def test_time_used_when_timestamp_missing(self, make_alert, config, now):
        alert = make_alert(timestamp=None, time=(now - timedelta(minutes=2)).isoformat())
        assert classify(alert, config, now) is AlertState.LIVE

    def test_future_alert_is_live(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=-5))
        assert classify(alert, config, now) is AlertState.LIVE

    def test_no_config_is_live(self, make_alert, now):
        alert = make_alert(age=timedelta(days=3))
        assert classify(alert, None, now) is AlertState.LIVE

    def test_zero_override_uses_global_default(self, make_alert, now):
        config = AlertTimeframeConfig(global_default=30, overrides={"15m": 0})
        alert = make_alert(age=timedelta(minutes=5))
        assert classify(alert, config, now) is AlertState.LIVE
        assert config.window_for("15m") == timedelta(minutes=30)


class TestFilterLive:
    """Expired alerts are dropped, order kept"""

    def test_drops_expired_keeps_order(self, make_alert, config, now):
        a = make_alert(trigger="A", age=timedelta(minutes=1))
        b = make_alert(trigger="B", age=timedelta(minutes=20))
        c = make_alert(trigger="C", age=timedelta(minutes=14, seconds=50))
        assert filter_live([a, b, c], config, now) == [a, c]

    def test_no_config_returns_input(self, make_alert, now):
        alerts = [make_alert(age=timedelta(days=3))]
        assert filter_live(alerts, None, now) is alerts

    def test_empty_returns_input(self, config, now):
        alerts = []
        assert filter_live(alerts, config, now) is alerts


class TestExpiringAlerts:
    def test_only_fade_band(self, make_alert, config, now):
        fading = make_alert(age=timedelta(minutes=14, seconds=40))
        fresh = make_alert(trigger="x", age=timedelta(minutes=2))
        gone = make_alert(trigger="y", age=timedelta(minutes=30))
        assert expiring_alerts([fading, fresh, gone], config, now) == [fading]

    def test_no_config(self, make_alert, now):
        assert expiring_alerts([make_alert()], None, now) == []


class TestTimeUntilExpiry:
    """Human-readable remaining time"""

    def test_minutes_and_seconds(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=10))
        assert time_until_expiry(alert, config, now) == "5m 0s"

    def test_seconds_only(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=14, seconds=45))
        assert time_until_expiry(alert, config, now) == "15s"

    def test_expired(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=16))
        assert time_until_expiry(alert, config, now) == "Expired"

    def test_exactly_at_window_is_expired(self, make_alert, config, now):
        alert = make_alert(age=timedelta(minutes=15))
        assert time_until_expiry(alert, config, now) == "Expired"

    def test_unknown_without_config(self, make_alert, now):
        assert time_until_expiry(make_alert(), None, now) == "Unknown"


class TestConfigFromDict:
    def test_display_contract_keys(self):
        config = AlertTimeframeConfig.from_dict({"globalDefault": 45, "overrides": {"1h": 90}})
        assert config.window_for("60") == timedelta(minutes=90)
        assert config.window_for("5m") == timedelta(minutes=45)
