# run.py
from __future__ import annotations

import logging
import time
from time import perf_counter

from config import Settings, get_settings
from engine.alerting import ActionDispatcher, TelegramConfig
from engine.backend_client import BackendClient, weight_lookup
from engine.models import ScoringResult
from engine.scoring import generate_scoring_data

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("runner")


def run_cycle(client: BackendClient, dispatcher: ActionDispatcher, settings: Settings) -> ScoringResult:
    """
    One polling pass: read the store, score, notify.

    Each pass works on a fresh snapshot; nothing carries over except the
    dispatcher's throttle.
    """
    weights = weight_lookup(client.fetch_available_alerts())
    alerts = client.fetch_alerts(limit=settings.alert_limit, weights=weights)
    strategies = client.fetch_strategies()

    try:
        summary = client.fetch_score(settings.score_time_window)
    except Exception as exc:  # noqa: BLE001
        log.warning("Score summary unavailable, resolving last action locally: %s", exc)
        summary = None

    result = generate_scoring_data(
        alerts,
        strategies,
        config=settings.alert_timeframes(),
        summary=summary,
        alert_limit=settings.alert_limit,
    )

    log.info(
        "Scored %s alerts against %s strategies: %s triggered",
        len(alerts),
        sum(1 for s in strategies if s.enabled),
        len(result.ticker_data),
    )
    for row in result.ticker_data:
        log.info(
            "%s | %s | %s | found=%s | score=%+.1f",
            row.strategy,
            row.ticker,
            ", ".join(row.missing_alerts),
            ", ".join(row.alerts_found),
            row.score,
        )

    if result.last_action:
        log.info(
            "Last action: %s %s (%s)",
            result.last_action.action,
            result.last_action.ticker,
            result.last_action.strategy,
        )

    for match in result.matches:
        dispatcher.dispatch(match)

    return result


def main() -> None:
    settings = get_settings()
    client = BackendClient(base_url=settings.api_base, token=settings.api_token)

    dispatcher = ActionDispatcher(
        tg_config=TelegramConfig(
            bot_token=settings.telegram_bot_token or "",
            chat_id=settings.telegram_chat_id or "",
        ),
        min_alert_interval_seconds=settings.min_alert_interval_seconds,
    )

    log.info("Starting scoring loop against %s ...", settings.api_base)

    while True:
        start = perf_counter()
        try:
            run_cycle(client, dispatcher, settings)
        except Exception as exc:  # noqa: BLE001
            log.exception("Error in scoring loop: %s", exc)

        log.debug("Cycle took %.0f ms", (perf_counter() - start) * 1000)
        log.info("Sleeping %s seconds...", settings.poll_interval_seconds)
        time.sleep(settings.poll_interval_seconds)


if __name__ == "__main__":
    main()
