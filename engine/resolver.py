# engine/resolver.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from engine.models import LastAction, StrategyMatch

log = logging.getLogger(__name__)


def extract_last_action(summary: Optional[Mapping[str, Any]]) -> Optional[LastAction]:
    """
    Pull `lastAction` out of a backend score summary.

    The backend shape is {action, ticker, strategy_name, timestamp};
    values are taken as they come.
    """
    if not summary:
        return None
    raw = summary.get("lastAction")
    if not isinstance(raw, Mapping) or not raw:
        if raw:
            log.debug("Ignoring malformed lastAction: %r", raw)
        return None

    return LastAction(
        action=raw.get("action"),
        ticker=raw.get("ticker"),
        strategy=raw.get("strategy_name") or "Unknown Strategy",
    )


def resolve_last_action(
    matches: Iterable[StrategyMatch],
    summary: Optional[Mapping[str, Any]] = None,
) -> Optional[LastAction]:
    """
    Pick the one action to surface.

    A backend summary wins outright. Otherwise the first match in
    evaluation order (strategies as stored, tickers in group order) is
    used; scores are not compared.
    """
    from_backend = extract_last_action(summary)
    if from_backend is not None:
        return from_backend

    for match in matches:
        return LastAction(action=match.action, ticker=match.ticker, strategy=match.strategy.name)

    log.debug("resolve_last_action: nothing triggered")
    return None
