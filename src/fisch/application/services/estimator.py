from __future__ import annotations

from typing import List, Optional, Protocol

from fisch.application.dtos import BestFish, EstimateRequest, EstimateResult
from fisch.domain.errors import EmptyLocation, InvalidConfiguration
from fisch.domain.models.catalog import (
    TIME_OF_DAY_TAGS,
    WEATHER_TAGS,
    Bait,
    Fish,
    Location,
    Rod,
)


BASE_CASTS_PER_HOUR = 60
BASE_SUCCESS_RATE = 0.70
LUCK_SUCCESS_DIVISOR = 1000
AURORA_SUCCESS_BONUS = 0.30
MAX_SUCCESS_RATE = 0.95

HIGH_SNAP_RISK = 0.8
LOW_SNAP_RISK = 0.1

SNAP_WARNING_THRESHOLD = 0.5
HIGH_LUCK_THRESHOLD = 150
FAST_CASTING_THRESHOLD = 100


class ReferenceCatalog(Protocol):
    def get_rod(self, rod_id: str) -> Optional[Rod]: ...

    def get_location(self, location_id: str) -> Optional[Location]: ...

    def get_bait(self, bait_id: str) -> Optional[Bait]: ...

    def list_fish(self) -> List[Fish]: ...


class ProfitEstimator:
    """Closed-form expected hourly profit for one rod/location/bait setup.

    The figure is an expected value, not a sampled simulation: the same
    request always produces the same result.
    """

    def __init__(self, catalog: ReferenceCatalog) -> None:
        self.catalog = catalog

    def _resolve(self, request: EstimateRequest) -> tuple[Rod, Location, Optional[Bait]]:
        rod = self.catalog.get_rod(request.rod_id)
        if rod is None:
            raise InvalidConfiguration(f"Unknown rod '{request.rod_id}'")
        location = self.catalog.get_location(request.location_id)
        if location is None:
            raise InvalidConfiguration(f"Unknown location '{request.location_id}'")

        bait = None
        if request.bait_id:
            bait = self.catalog.get_bait(request.bait_id)
            if bait is None:
                raise InvalidConfiguration(f"Unknown bait '{request.bait_id}'")

        if request.weather not in WEATHER_TAGS:
            raise InvalidConfiguration(
                f"Unsupported weather '{request.weather}'. Allowed values: {', '.join(WEATHER_TAGS)}"
            )
        if request.time_of_day not in TIME_OF_DAY_TAGS:
            raise InvalidConfiguration(
                f"Unsupported time of day '{request.time_of_day}'. Allowed values: {', '.join(TIME_OF_DAY_TAGS)}"
            )
        return rod, location, bait

    def available_fish(self, location: Location) -> List[Fish]:
        wanted = set(location.fish_available)
        return [fish for fish in self.catalog.list_fish() if fish.id in wanted]

    def estimate(self, request: EstimateRequest) -> EstimateResult:
        rod, location, bait = self._resolve(request)
        is_aurora = request.weather == "aurora"

        casts_per_hour = max(0.0, BASE_CASTS_PER_HOUR * (1 + rod.stats.lure_speed / 100))
        success_rate = BASE_SUCCESS_RATE + rod.stats.luck / LUCK_SUCCESS_DIVISOR
        if is_aurora:
            success_rate += AURORA_SUCCESS_BONUS
        success_rate = max(0.0, min(MAX_SUCCESS_RATE, success_rate))

        fish = self.available_fish(location)
        if not fish:
            raise EmptyLocation(location.id)

        avg_fish_value = sum(item.base_value for item in fish) / len(fish)
        bait_multiplier = (1 + bait.preferred_luck / 100) if bait is not None else 1
        profit_per_cast = avg_fish_value * success_rate * bait_multiplier
        hourly_profit = profit_per_cast * casts_per_hour

        heaviest = max(item.max_weight for item in fish)
        line_snap_risk = HIGH_SNAP_RISK if heaviest > rod.stats.max_kg else LOW_SNAP_RISK

        best = fish[0]
        for item in fish[1:]:
            if item.base_value > best.base_value:
                best = item

        tips: List[str] = []
        if line_snap_risk > SNAP_WARNING_THRESHOLD:
            tips.append("Warning: Your rod may snap with heavier fish!")
        if is_aurora:
            tips.append("Aurora weather gives massive luck boost!")
        if bait is not None:
            tips.append(f"Using {bait.name} increases catch rate")
        if rod.stats.luck > HIGH_LUCK_THRESHOLD:
            tips.append("High luck rod - great for rare fish!")
        if casts_per_hour > FAST_CASTING_THRESHOLD:
            tips.append("Very fast casting - great for volume fishing!")

        return EstimateResult(
            hourly_profit=hourly_profit,
            profit_per_cast=profit_per_cast,
            casts_per_hour=casts_per_hour,
            success_rate=success_rate,
            line_snap_risk=line_snap_risk,
            best_fish=BestFish(
                fish_id=best.id,
                name=best.name,
                value=avg_fish_value,
                catch_rate=success_rate,
            ),
            tips=tips,
        )
