# engine/scoring.py
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from engine.evaluator import (
    direction_from_threshold,
    evaluate_strategy,
    latest_contributor,
    match_strategy,
    score_of,
)
from engine.grouping import group_by_ticker
from engine.indicators import DEFAULT_NAMES, IndicatorNames
from engine.models import Alert, ScoringResult, Strategy, StrategyMatch, TickerScore
from engine.resolver import resolve_last_action
from engine.windowing import AlertTimeframeConfig, filter_live

log = logging.getLogger(__name__)

ALERT_LIMIT = 50


def _row_for(match: StrategyMatch) -> TickerScore:
    return TickerScore(
        strategy=match.strategy.name,
        ticker=match.ticker,
        timeframe=match.strategy.timeframe_label,
        timestamp=match.timestamp,
        alerts_found=match.triggers,
        missing_alerts=[f"{match.action} triggered"],
        score=match.score,
    )


def generate_scoring_data(
    alerts: Sequence[Alert],
    strategies: Sequence[Strategy],
    config: Optional[AlertTimeframeConfig] = None,
    now: Optional[datetime] = None,
    summary: Optional[Mapping[str, Any]] = None,
    names: IndicatorNames = DEFAULT_NAMES,
    alert_limit: int = ALERT_LIMIT,
) -> ScoringResult:
    """
    Evaluate every enabled strategy against the recent alert window.

    Pipeline:
      - keep the newest `alert_limit` alerts (input is newest-first)
      - drop expired alerts when a timeframe config is given
      - dedupe and group by ticker
      - one row per (strategy, ticker) that completes
      - last action: backend summary if given, else first completion
    """
    recent = filter_live(list(alerts[:alert_limit]), config, now)
    groups = group_by_ticker(recent)

    matches: List[StrategyMatch] = []
    for strategy in strategies:
        if not strategy.enabled:
            continue
        for group in groups:
            match = evaluate_strategy(strategy, group.ticker, group.alerts, names)
            if match is not None:
                matches.append(match)

    log.debug(
        "generate_scoring_data: alerts=%d live=%d tickers=%d matches=%d",
        len(alerts),
        len(recent),
        len(groups),
        len(matches),
    )

    return ScoringResult(
        ticker_data=[_row_for(m) for m in matches],
        last_action=resolve_last_action(matches, summary),
        matches=matches,
    )


def synchronized_scores(
    alerts: Sequence[Alert],
    strategies: Sequence[Strategy],
    time_window_minutes: float = 60,
    now: Optional[datetime] = None,
    names: IndicatorNames = DEFAULT_NAMES,
) -> List[TickerScore]:
    """
    Progress view: one row per enabled strategy, for its best ticker.

    The best ticker is the first one that completes the strategy, or
    failing that the one with the most matched requirements. Unmet
    requirements are listed; a complete row shows the action instead,
    decided by the strategy's threshold sign. Strategies with no
    matches at all are left out. Rows are ordered most-complete first.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - timedelta(minutes=time_window_minutes)

    by_ticker: Dict[str, List[Alert]] = defaultdict(list)
    for alert in alerts:
        if alert.parsed_time >= cutoff:
            by_ticker[alert.ticker].append(alert)

    rows: List[TickerScore] = []
    for strategy in strategies:
        if not strategy.enabled:
            continue

        best_ticker: Optional[str] = None
        best = None
        for ticker, ticker_alerts in by_ticker.items():
            result = match_strategy(strategy, ticker_alerts, names)
            if result.complete and result.found:
                best_ticker, best = ticker, result
                break
            if result.found and (best is None or len(result.found) > len(best.found)):
                best_ticker, best = ticker, result

        if best is None or best_ticker is None:
            continue

        score = score_of(best.found)
        latest = latest_contributor(best.found)
        missing = list(best.missing)
        if best.complete:
            missing = [f"{direction_from_threshold(strategy.threshold, score)} triggered"]

        rows.append(
            TickerScore(
                strategy=strategy.name,
                ticker=best_ticker,
                timeframe=strategy.timeframe_label,
                timestamp=latest.raw_time if latest is not None else None,
                alerts_found=[a.trigger for a in best.found],
                missing_alerts=missing,
                score=score,
            )
        )

    rows.sort(key=lambda r: len(r.alerts_found), reverse=True)
    return rows
