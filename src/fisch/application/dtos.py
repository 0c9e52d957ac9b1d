from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fisch.domain.events import SyncOutcome


@dataclass(frozen=True)
class EstimateRequest:
    rod_id: str
    location_id: str
    bait_id: Optional[str] = None
    weather: str = "clear"
    time_of_day: str = "day"


@dataclass(frozen=True)
class BestFish:
    fish_id: str
    name: str
    value: float
    catch_rate: float


@dataclass
class EstimateResult:
    hourly_profit: float
    profit_per_cast: float
    casts_per_hour: float
    success_rate: float
    line_snap_risk: float
    best_fish: BestFish
    tips: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValueListItem:
    id: str
    name: str
    category: str
    rarity: str
    base_value: float
    max_value: float
    trend: str = "stable"
    current_price: Optional[float] = None
    price_change: float = 0.0


@dataclass
class SyncReport:
    timestamp: float
    results: Dict[str, SyncOutcome] = field(default_factory=dict)

    @property
    def all_ok(self) -> bool:
        return all(outcome.ok for outcome in self.results.values())


@dataclass(frozen=True)
class SyncStatus:
    is_running: bool
    last_sync: Optional[float]
    needs_sync: bool
    is_online: bool
