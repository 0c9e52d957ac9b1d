from __future__ import annotations

import random
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional

from fisch.domain.models.catalog import as_float


PRICE_VARIATION = 0.10
# Percent; smaller moves read as flat.
STABLE_CHANGE_PERCENT = 0.01


def trend_for_change(change_percent: float) -> str:
    if abs(change_percent) < STABLE_CHANGE_PERCENT:
        return "stable"
    return "up" if change_percent > 0 else "down"


class PriceMonitor:
    """Simulated market quotes around each fish's base value, with short history."""

    def __init__(
        self,
        fish_rows: Iterable[Mapping[str, Any]],
        rng: Optional[random.Random] = None,
        history_size: int = 10,
    ) -> None:
        self._base_values: Dict[str, float] = {}
        self.load(fish_rows)
        self._rng = rng or random.Random()
        self.history_size = max(1, int(history_size))
        self._history: Dict[str, Deque[int]] = {}

    def load(self, fish_rows: Iterable[Mapping[str, Any]]) -> None:
        self._base_values = {
            str(row["id"]): as_float(row.get("baseValue"))
            for row in fish_rows
            if "id" in row
        }

    def quote(self, fish_ids: Iterable[str]) -> Dict[str, int]:
        prices: Dict[str, int] = {}
        for fish_id in fish_ids:
            base_value = self._base_values.get(fish_id)
            if base_value is None:
                continue
            variation = (1 - PRICE_VARIATION) + self._rng.random() * (2 * PRICE_VARIATION)
            prices[fish_id] = round(base_value * variation)
        return prices

    def update(self, fish_ids: Iterable[str]) -> Dict[str, int]:
        prices = self.quote(fish_ids)
        for fish_id, price in prices.items():
            history = self._history.setdefault(fish_id, deque(maxlen=self.history_size))
            history.append(price)
        return prices

    def history(self, fish_id: str) -> List[int]:
        return list(self._history.get(fish_id, ()))

    def price_change(self, fish_id: str) -> float:
        """Percent change from the oldest to the newest quote still in history."""
        history = self._history.get(fish_id)
        if not history or len(history) < 2 or history[0] == 0:
            return 0.0
        return (history[-1] - history[0]) / history[0] * 100

    def trend(self, fish_id: str) -> str:
        return trend_for_change(self.price_change(fish_id))

    def trends(self) -> Dict[str, str]:
        return {fish_id: self.trend(fish_id) for fish_id in self._history}
