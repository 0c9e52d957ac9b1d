from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"
    EXOTIC = "exotic"


RARITY_ORDER = {rarity.value: index for index, rarity in enumerate(Rarity)}

WEATHER_TAGS = ("clear", "rain", "fog", "aurora")
TIME_OF_DAY_TAGS = ("day", "night")


def as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _id_list(values: Any) -> List[str]:
    if not isinstance(values, (list, tuple)):
        return []
    return [str(value) for value in values if str(value).strip()]


@dataclass(frozen=True)
class RodStats:
    max_kg: float = 0.0
    lure_speed: float = 0.0
    luck: float = 0.0
    control: float = 0.0
    resilience: float = 0.0


@dataclass(frozen=True)
class PassiveAbility:
    name: str
    description: str = ""
    multiplier: Optional[float] = None


@dataclass(frozen=True)
class Rod:
    id: str
    name: str
    rarity: str = Rarity.COMMON.value
    stats: RodStats = field(default_factory=RodStats)
    passive: Optional[PassiveAbility] = None
    base_value: float = 0.0

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Rod":
        stats = row.get("rodStats") or {}
        passive_row = row.get("passiveAbility")
        passive = None
        if isinstance(passive_row, Mapping) and passive_row.get("name"):
            multiplier = passive_row.get("multiplier")
            passive = PassiveAbility(
                name=str(passive_row["name"]),
                description=str(passive_row.get("description", "")),
                multiplier=as_float(multiplier) if multiplier is not None else None,
            )
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or row["id"]),
            rarity=str(row.get("rarity", Rarity.COMMON.value)),
            stats=RodStats(
                max_kg=as_float(stats.get("maxKg")),
                lure_speed=as_float(stats.get("lureSpeed")),
                luck=as_float(stats.get("luck")),
                control=as_float(stats.get("control")),
                resilience=as_float(stats.get("resilience")),
            ),
            passive=passive,
            base_value=as_float(row.get("baseValue")),
        )


@dataclass(frozen=True)
class Fish:
    id: str
    name: str
    base_value: float
    rarity: str = Rarity.COMMON.value
    min_weight: float = 0.0
    max_weight: float = 0.0
    mutations: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.mutations:
            raise ValueError(f"Fish '{self.id}' must define at least one mutation")
        low = [name for name, multiplier in self.mutations.items() if multiplier < 1]
        if low:
            raise ValueError(f"Fish '{self.id}' has mutation multipliers below 1: {', '.join(sorted(low))}")

    @property
    def max_multiplier(self) -> float:
        return max(self.mutations.values())

    @property
    def max_value(self) -> float:
        return self.base_value * self.max_multiplier

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Fish":
        stats = row.get("fishStats") or {}
        mutations = row.get("mutations") or {}
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or row["id"]),
            base_value=as_float(row.get("baseValue")),
            rarity=str(row.get("rarity", Rarity.COMMON.value)),
            min_weight=as_float(stats.get("minWeight")),
            max_weight=as_float(stats.get("maxWeight")),
            mutations={str(name): as_float(value) for name, value in dict(mutations).items()},
        )


@dataclass(frozen=True)
class Bait:
    id: str
    name: str
    preferred_luck: float = 0.0
    speed_modifier: Optional[float] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Bait":
        effect = row.get("effect") or {}
        speed = effect.get("speedModifier")
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or row["id"]),
            preferred_luck=as_float(effect.get("preferredLuck")),
            speed_modifier=as_float(speed) if speed is not None else None,
        )


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    fish_available: List[str] = field(default_factory=list)
    weather_effects: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Location":
        effects = row.get("weatherEffects") or {}
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or row["id"]),
            fish_available=_id_list(row.get("fishAvailable")),
            weather_effects={
                str(weather): _id_list(ids)
                for weather, ids in dict(effects).items()
                if weather in WEATHER_TAGS
            },
        )


class CodeStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Code:
    code: str
    reward: str
    status: CodeStatus = CodeStatus.ACTIVE
    expires: str = ""

    @property
    def is_active(self) -> bool:
        return self.status is CodeStatus.ACTIVE

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Code":
        raw_status = str(row.get("status", "active")).strip().lower()
        # "working" is the label the codes page used for redeemable codes.
        status = CodeStatus.EXPIRED if raw_status == "expired" else CodeStatus.ACTIVE
        return cls(
            code=str(row["code"]),
            reward=str(row.get("reward", "")),
            status=status,
            expires=str(row.get("expires") or row.get("expiredDate") or ""),
        )
