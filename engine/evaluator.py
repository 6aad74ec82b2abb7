# engine/evaluator.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from engine.indicators import DEFAULT_NAMES, IndicatorNames
from engine.models import Action, Alert, RuleGroup, RuleRef, Strategy, StrategyMatch

log = logging.getLogger(__name__)

SCORE_PRECISION = 4

_SELL_WORDS = ("sell", "premium")


@dataclass(frozen=True)
class GroupedRules:
    """Structured rule groups; any one satisfied group completes the strategy."""

    groups: Tuple[RuleGroup, ...]


@dataclass(frozen=True)
class FlatRules:
    """Legacy flat list; every rule must match."""

    rules: Tuple[RuleRef, ...]


RuleSource = Union[GroupedRules, FlatRules]


@dataclass(frozen=True)
class RuleMatch:
    """Found/missing breakdown for one strategy against one ticker."""

    complete: bool
    found: Tuple[Alert, ...] = ()
    missing: Tuple[str, ...] = ()


def rule_source(strategy: Strategy) -> Optional[RuleSource]:
    """Rule groups win over flat rules; neither means never triggerable."""
    if strategy.rule_groups:
        return GroupedRules(strategy.rule_groups)
    if strategy.rules:
        return FlatRules(strategy.rules)
    return None


def find_alert(
    required: RuleRef,
    alerts: Sequence[Alert],
    names: IndicatorNames = DEFAULT_NAMES,
) -> Optional[Alert]:
    for alert in alerts:
        if alert.trigger == required.trigger and names.same(alert.indicator, required.indicator):
            return alert
    return None


def satisfy_group(
    group: RuleGroup,
    alerts: Sequence[Alert],
    names: IndicatorNames = DEFAULT_NAMES,
) -> Optional[Tuple[Alert, ...]]:
    """
    Alerts that satisfy `group`, or None.

    OR stops at the first requirement that matches and reports only
    that alert. AND needs every requirement and reports one alert per
    requirement, so a requirement listed twice weighs twice.
    An empty group is never satisfied.
    """
    if not group.requirements:
        return None

    if group.operator == "OR":
        for required in group.requirements:
            hit = find_alert(required, alerts, names)
            if hit is not None:
                return (hit,)
        return None

    hits: Tuple[Alert, ...] = ()
    for required in group.requirements:
        hit = find_alert(required, alerts, names)
        if hit is None:
            return None
        hits = hits + (hit,)

    # reported in the ticker's alert order, one entry per requirement
    return tuple(a for a in alerts for h in hits if a is h)


def satisfy(
    source: RuleSource,
    alerts: Sequence[Alert],
    names: IndicatorNames = DEFAULT_NAMES,
) -> Optional[Tuple[Alert, ...]]:
    if isinstance(source, FlatRules):
        return satisfy_group(RuleGroup(operator="AND", requirements=source.rules), alerts, names)

    for group in source.groups:
        found = satisfy_group(group, alerts, names)
        if found is not None:
            return found
    return None


def score_of(alerts: Sequence[Alert]) -> float:
    return round(sum(a.weight for a in alerts), SCORE_PRECISION)


def latest_contributor(alerts: Sequence[Alert]) -> Optional[Alert]:
    latest: Optional[Alert] = None
    for alert in alerts:
        if latest is None or alert.parsed_time > latest.parsed_time:
            latest = alert
    return latest


def direction_from_name(name: str) -> Action:
    """Live path: strategies are named for their side ("Sell on premium zone")."""
    lowered = (name or "").lower()
    if any(word in lowered for word in _SELL_WORDS):
        return "Sell"
    return "Buy"


def direction_from_threshold(threshold: float, score: float) -> Action:
    """Synchronized path: threshold sign decides, score sign breaks a zero threshold."""
    if threshold > 0:
        return "Buy"
    if threshold < 0:
        return "Sell"
    return "Buy" if score >= 0 else "Sell"


def evaluate_strategy(
    strategy: Strategy,
    ticker: str,
    alerts: Sequence[Alert],
    names: IndicatorNames = DEFAULT_NAMES,
) -> Optional[StrategyMatch]:
    """
    Decide whether `strategy` completes for one ticker's alerts.

    Returns None for a disabled strategy, a strategy with no rules, or
    one that simply isn't satisfied yet. None is the normal negative
    answer, not an error.
    """
    if not strategy.enabled:
        return None

    source = rule_source(strategy)
    if source is None:
        return None

    found = satisfy(source, alerts, names)
    if not found:
        log.debug("%s for %s: not complete", strategy.name, ticker)
        return None

    latest = latest_contributor(found)
    match = StrategyMatch(
        strategy=strategy,
        ticker=ticker,
        found=found,
        score=score_of(found),
        action=direction_from_name(strategy.name),
        timestamp=latest.raw_time if latest is not None else None,
    )
    log.debug(
        "%s for %s: complete, found=%s, score=%s, action=%s",
        strategy.name,
        ticker,
        ", ".join(match.triggers),
        match.score,
        match.action,
    )
    return match


# --------------------------------------------------------------------- #
# Partial matching (synchronized view)
# --------------------------------------------------------------------- #


def _match_group(group: RuleGroup, alerts: Sequence[Alert], names: IndicatorNames) -> RuleMatch:
    if not group.requirements:
        return RuleMatch(complete=False)

    if group.operator == "OR":
        satisfied = satisfy_group(group, alerts, names)
        if satisfied:
            return RuleMatch(complete=True, found=satisfied)
        return RuleMatch(complete=False, missing=tuple(r.trigger for r in group.requirements))

    hits = tuple((r, find_alert(r, alerts, names)) for r in group.requirements)
    found = tuple(a for a in alerts for _, alert in hits if a is alert)
    missing = tuple(r.trigger for r, alert in hits if alert is None)
    return RuleMatch(complete=not missing, found=found, missing=missing)


def match_strategy(
    strategy: Strategy,
    alerts: Sequence[Alert],
    names: IndicatorNames = DEFAULT_NAMES,
) -> RuleMatch:
    """
    Found and missing requirements, for progress display.

    A satisfied group reports as complete exactly as `evaluate_strategy`
    would. Otherwise the group with the most matches is reported
    (earliest group on ties) together with what it still lacks.
    """
    source = rule_source(strategy)
    if source is None:
        return RuleMatch(complete=False)

    if isinstance(source, FlatRules):
        return _match_group(RuleGroup(operator="AND", requirements=source.rules), alerts, names)

    best: Optional[RuleMatch] = None
    for group in source.groups:
        result = _match_group(group, alerts, names)
        if result.complete:
            return result
        if best is None or len(result.found) > len(best.found):
            best = result
    return best or RuleMatch(complete=False)
