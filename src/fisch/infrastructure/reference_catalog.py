import logging
from typing import Dict, Iterable, List, Mapping, Optional

from fisch.domain.models.catalog import Bait, Fish, Location, Rod
from fisch.infrastructure.baseline_provider import BaselineProvider


logger = logging.getLogger(__name__)


def _index(rows: Iterable[Mapping], factory) -> Dict[str, object]:
    indexed: Dict[str, object] = {}
    for row in rows:
        try:
            item = factory(row)
        except (KeyError, ValueError) as exc:
            logger.warning(
                "Skipping malformed reference row",
                extra={"row_id": row.get("id"), "error": str(exc)},
            )
            continue
        indexed[item.id] = item
    return indexed


class InMemoryReferenceCatalog:
    """Rods, fish, bait and locations the estimator resolves ids against.

    Dict insertion order keeps the order rows arrived in, which the estimator
    relies on for its best-fish tie break.
    """

    def __init__(
        self,
        rods: Optional[Dict[str, Rod]] = None,
        fish: Optional[Dict[str, Fish]] = None,
        bait: Optional[Dict[str, Bait]] = None,
        locations: Optional[Dict[str, Location]] = None,
    ) -> None:
        self._rods = dict(rods or {})
        self._fish = dict(fish or {})
        self._bait = dict(bait or {})
        self._locations = dict(locations or {})

    @classmethod
    def from_rows(
        cls,
        *,
        rods: Iterable[Mapping] = (),
        fish: Iterable[Mapping] = (),
        bait: Iterable[Mapping] = (),
        locations: Iterable[Mapping] = (),
    ) -> "InMemoryReferenceCatalog":
        return cls(
            rods=_index(rods, Rod.from_mapping),
            fish=_index(fish, Fish.from_mapping),
            bait=_index(bait, Bait.from_mapping),
            locations=_index(locations, Location.from_mapping),
        )

    @classmethod
    def from_baseline(cls, provider: BaselineProvider) -> "InMemoryReferenceCatalog":
        return cls.from_rows(
            rods=provider.rods(),
            fish=provider.fish(),
            bait=provider.bait(),
            locations=provider.locations(),
        )

    def get_rod(self, rod_id: str) -> Optional[Rod]:
        return self._rods.get(rod_id)

    def get_location(self, location_id: str) -> Optional[Location]:
        return self._locations.get(location_id)

    def get_bait(self, bait_id: str) -> Optional[Bait]:
        return self._bait.get(bait_id)

    def get_fish(self, fish_id: str) -> Optional[Fish]:
        return self._fish.get(fish_id)

    def list_rods(self) -> List[Rod]:
        return list(self._rods.values())

    def list_fish(self) -> List[Fish]:
        return list(self._fish.values())

    def list_bait(self) -> List[Bait]:
        return list(self._bait.values())

    def list_locations(self) -> List[Location]:
        return list(self._locations.values())

    def replace_rows(self, kind: str, rows: Iterable[Mapping]) -> None:
        """Swap in a freshly merged rod or fish collection."""
        if kind == "rods":
            self._rods = _index(rows, Rod.from_mapping)
        elif kind == "fish":
            self._fish = _index(rows, Fish.from_mapping)
        else:
            raise ValueError(f"Reference catalog cannot refresh '{kind}'")
