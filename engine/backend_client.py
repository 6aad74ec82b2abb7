# engine/backend_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import requests

from engine.models import Alert, Strategy

log = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """The alert/strategy store could not be read."""


def weight_lookup(available_alerts: Sequence[Mapping[str, Any]]) -> Dict[Tuple[str, str], float]:
    """(indicator, trigger) -> weight, from the store's catalogue of known alerts."""
    weights: Dict[Tuple[str, str], float] = {}
    for entry in available_alerts:
        try:
            weights[(str(entry["indicator"]), str(entry["trigger"]))] = float(entry.get("weight") or 0.0)
        except (KeyError, TypeError, ValueError):
            log.debug("Skipping malformed available alert: %r", entry)
    return weights


class BackendClient:
    """
    Read-only client for the alert/strategy store's HTTP API.

    Only the endpoints the scoring loop needs: recent alerts, strategies,
    the alert catalogue (for weights) and the backend score summary.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 5.0,
        max_retries: int = 3,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        last_exc: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = requests.get(url, params=params or {}, headers=self._headers(), timeout=self.timeout)
                if resp.status_code >= 500:
                    raise RuntimeError(f"Server error {resp.status_code}: {resp.text}")
                resp.raise_for_status()
                return resp.json()
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                log.warning("Backend GET failed (%s) attempt %s: %s", path, attempt, exc)

        raise BackendError(f"Backend GET {path} failed after {self.max_retries} tries: {last_exc}")

    # ---------- convenience helpers ----------

    def fetch_available_alerts(self) -> List[Dict[str, Any]]:
        return list(self.get("/api/available-alerts") or [])

    def fetch_alerts(
        self,
        limit: int = 50,
        weights: Optional[Mapping[Tuple[str, str], float]] = None,
    ) -> List[Alert]:
        """
        Most recent alerts, newest first.

        Stored alerts carry no weight of their own; pass `weights` (see
        `weight_lookup`) to fill it in from the catalogue.
        """
        rows = self.get("/api/alerts", {"limit": limit}) or []
        return [Alert.from_dict(row, weights) for row in rows]

    def fetch_strategies(self) -> List[Strategy]:
        rows = self.get("/api/strategies") or []
        return [Strategy.from_dict(row) for row in rows]

    def fetch_score(self, time_window: int = 60) -> Dict[str, Any]:
        """Backend summary; may carry a precomputed `lastAction`."""
        return self.get("/api/score", {"timeWindow": time_window}) or {}
