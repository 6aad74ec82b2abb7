# engine/grouping.py
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from engine.models import Alert
from engine.timeframes import DEFAULT_SCALE, TimeframeScale

log = logging.getLogger(__name__)


@dataclass
class AlertGroup:
    key: str
    ticker: str
    timeframe: str = ""
    alerts: List[Alert] = field(default_factory=list)


def _collation(ticker: str) -> Tuple[str, str]:
    # case-insensitive first, raw value keeps the order total
    return (ticker.casefold(), ticker)


def dedupe_latest(alerts: Sequence[Alert], scale: TimeframeScale = DEFAULT_SCALE) -> List[Alert]:
    """
    Collapse repeats of the same signal to the most recent one.

    Key is (ticker, normalized timeframe, indicator, trigger). A later
    parsed time replaces the kept alert; on equal times the first one
    seen stays. Output order follows the first occurrence of each key.
    """
    latest: Dict[Tuple[str, str, str, str], Alert] = {}

    for alert in alerts:
        key = (alert.ticker, scale.normalize(alert.timeframe), alert.indicator, alert.trigger)
        kept = latest.get(key)
        if kept is None or alert.parsed_time > kept.parsed_time:
            latest[key] = alert

    if len(latest) != len(alerts):
        log.debug("dedupe_latest: input=%d, output=%d", len(alerts), len(latest))
    return list(latest.values())


def _newest_first(alerts: List[Alert]) -> List[Alert]:
    return sorted(alerts, key=lambda a: a.parsed_time, reverse=True)


def group_by_ticker(alerts: Sequence[Alert], scale: TimeframeScale = DEFAULT_SCALE) -> List[AlertGroup]:
    """
    Dedupe, then bucket by ticker.

    Inside a group alerts run shortest timeframe first, newest first
    within a timeframe. Groups are ordered by ticker.
    """
    grouped: Dict[str, List[Alert]] = defaultdict(list)
    for alert in dedupe_latest(alerts, scale):
        grouped[alert.ticker].append(alert)

    groups: List[AlertGroup] = []
    for ticker, members in grouped.items():
        # two stable sorts: time desc, then timeframe asc
        ordered = sorted(_newest_first(members), key=lambda a: scale.sort_key(a.timeframe))
        groups.append(AlertGroup(key=ticker, ticker=ticker, alerts=ordered))

    groups.sort(key=lambda g: _collation(g.ticker))
    return groups


def group_by_ticker_and_timeframe(
    alerts: Sequence[Alert],
    scale: TimeframeScale = DEFAULT_SCALE,
) -> List[AlertGroup]:
    grouped: Dict[Tuple[str, str], List[Alert]] = defaultdict(list)
    for alert in dedupe_latest(alerts, scale):
        grouped[(alert.ticker, scale.normalize(alert.timeframe))].append(alert)

    groups = [
        AlertGroup(
            key=f"{ticker}-{timeframe}",
            ticker=ticker,
            timeframe=timeframe,
            alerts=_newest_first(members),
        )
        for (ticker, timeframe), members in grouped.items()
    ]
    groups.sort(key=lambda g: (_collation(g.ticker), scale.sort_key(g.timeframe)))
    return groups
