# engine/timeframes.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

# Unknown labels sort after every parseable duration.
UNKNOWN_SORT_ORDER = 999_999

_LABEL_RE = re.compile(r"^(\d+)?([a-z]*)$")

_DEFAULT_UNITS = {
    "": 1,
    "m": 1,
    "min": 1,
    "mins": 1,
    "minute": 1,
    "minutes": 1,
    "h": 60,
    "hr": 60,
    "hrs": 60,
    "hour": 60,
    "hours": 60,
    "d": 1440,
    "day": 1440,
    "days": 1440,
    "w": 10080,
    "wk": 10080,
    "week": 10080,
    "weeks": 10080,
}

# Canonical suffixes, largest first.
_CANONICAL_UNITS: Tuple[Tuple[str, int], ...] = (("w", 10080), ("d", 1440), ("h", 60), ("m", 1))


@dataclass(frozen=True)
class TimeframeScale:
    """
    Unit table used to turn timeframe labels into minutes.

    Labels are compared case-insensitively with whitespace removed, so
    "15", "15m", "15min" and "15 M" are all fifteen minutes. A bare
    unit ("D", "W") means one of it.
    """

    units: Mapping[str, int] = field(default_factory=lambda: MappingProxyType(dict(_DEFAULT_UNITS)))

    def minutes(self, label: Optional[str]) -> Optional[int]:
        if not label:
            return None
        text = re.sub(r"\s+", "", str(label)).lower()
        match = _LABEL_RE.match(text)
        if not match:
            return None
        number, unit = match.groups()
        if number is None and not unit:
            return None
        per_unit = self.units.get(unit)
        if per_unit is None:
            return None
        if number is None and per_unit < _DEFAULT_UNITS["d"]:
            # a bare "m" or "h" is ambiguous; only "D" and "W" stand alone
            return None
        count = int(number) if number is not None else 1
        if count <= 0:
            return None
        return count * per_unit

    def normalize(self, label: str) -> str:
        total = self.minutes(label)
        if total is None:
            return label
        for suffix, size in _CANONICAL_UNITS:
            if total % size == 0:
                return f"{total // size}{suffix}"
        return f"{total}m"

    def sort_order(self, label: str) -> int:
        total = self.minutes(label)
        return UNKNOWN_SORT_ORDER if total is None else total

    def sort_key(self, label: str) -> Tuple[int, int, str]:
        total = self.minutes(label)
        if total is None:
            return (1, 0, label or "")
        return (0, total, "")


DEFAULT_SCALE = TimeframeScale()


def normalize(label: str, scale: TimeframeScale = DEFAULT_SCALE) -> str:
    return scale.normalize(label)


def sort_order(label: str, scale: TimeframeScale = DEFAULT_SCALE) -> int:
    return scale.sort_order(label)


def sort_key(label: str, scale: TimeframeScale = DEFAULT_SCALE) -> Tuple[int, int, str]:
    return scale.sort_key(label)
