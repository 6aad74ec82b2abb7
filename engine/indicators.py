# engine/indicators.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

_DISPLAY_NAMES = {
    "extreme_zones": "Extreme Zones",
    "nautilus": "Nautilus™",
    "market_core": "Market Core Pro™",
    "market_waves": "Market Waves Pro™",
}


@dataclass(frozen=True)
class IndicatorNames:
    """
    Lookup from compact indicator codes to display names.

    Strategy rules and stored alerts may spell the same indicator either
    way; both sides go through `canonicalize` before an exact comparison.
    Display names map to themselves, unknown codes pass through.
    """

    display_names: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(_DISPLAY_NAMES)))

    def canonicalize(self, code: str) -> str:
        return self.display_names.get(code, code)

    def same(self, a: str, b: str) -> bool:
        return self.canonicalize(a) == self.canonicalize(b)


DEFAULT_NAMES = IndicatorNames()


def canonicalize(code: str, names: IndicatorNames = DEFAULT_NAMES) -> str:
    return names.canonicalize(code)
