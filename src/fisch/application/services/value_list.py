from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from fisch.application.dtos import ValueListItem
from fisch.application.services.price_monitor import trend_for_change
from fisch.domain.models.catalog import RARITY_ORDER, Code, Fish, as_float


# Ethereal Prism Rod passive, the largest rod multiplier in the game.
MAX_ROD_PASSIVE_MULTIPLIER = 8

VALUE_LIST_CATEGORIES = ("all", "fish", "rod")
VALUE_LIST_SORTS = ("value", "rarity", "name")

logger = logging.getLogger(__name__)


def max_value(fish: Fish) -> float:
    return fish.max_value


def max_value_with_passive(fish: Fish, rod_multiplier: float = MAX_ROD_PASSIVE_MULTIPLIER) -> float:
    return fish.max_value * rod_multiplier


def format_currency(value: float) -> str:
    if value >= 1_000_000:
        return f"C${value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"C${value / 1_000:.0f}K"
    return f"C${value:,.0f}"


def change_from_base(base_value: float, price: float | None) -> float:
    """Percent move of the live price away from the listed base value."""
    if price is None or not base_value:
        return 0.0
    return (price - base_value) / base_value * 100


def _item(
    *,
    item_id: str,
    name: str,
    category: str,
    rarity: str,
    base_value: float,
    multiplier: float,
    price: float | None,
) -> ValueListItem:
    change = change_from_base(base_value, price)
    shown = price if price is not None else base_value
    return ValueListItem(
        id=item_id,
        name=name,
        category=category,
        rarity=rarity,
        base_value=base_value,
        max_value=shown * multiplier,
        trend=trend_for_change(change),
        current_price=price,
        price_change=change,
    )


def _fish_item(row: Mapping[str, Any], price: float | None) -> ValueListItem | None:
    try:
        fish = Fish.from_mapping(row)
    except (KeyError, ValueError) as exc:
        logger.warning("Skipping fish row in value list", extra={"row_id": row.get("id"), "error": str(exc)})
        return None
    return _item(
        item_id=fish.id,
        name=fish.name,
        category="fish",
        rarity=fish.rarity,
        base_value=fish.base_value,
        multiplier=fish.max_multiplier,
        price=price,
    )


def _rod_item(row: Mapping[str, Any], price: float | None) -> ValueListItem | None:
    if "id" not in row:
        return None
    return _item(
        item_id=str(row["id"]),
        name=str(row.get("name") or row["id"]),
        category="rod",
        rarity=str(row.get("rarity", "common")),
        base_value=as_float(row.get("baseValue")),
        multiplier=1,
        price=price,
    )


def build_value_list(
    fish_rows: Iterable[Mapping[str, Any]],
    rod_rows: Iterable[Mapping[str, Any]],
    *,
    category: str = "all",
    sort_by: str = "value",
    query: str = "",
    prices: Mapping[str, float] | None = None,
) -> list[ValueListItem]:
    if category not in VALUE_LIST_CATEGORIES:
        raise ValueError(f"Unsupported category '{category}'. Allowed values: {', '.join(VALUE_LIST_CATEGORIES)}")
    if sort_by not in VALUE_LIST_SORTS:
        raise ValueError(f"Unsupported sort '{sort_by}'. Allowed values: {', '.join(VALUE_LIST_SORTS)}")
    prices = prices or {}

    items: list[ValueListItem] = []
    if category in ("all", "fish"):
        for row in fish_rows:
            item = _fish_item(row, prices.get(str(row.get("id", ""))))
            if item is not None:
                items.append(item)
    if category in ("all", "rod"):
        for row in rod_rows:
            item = _rod_item(row, prices.get(str(row.get("id", ""))))
            if item is not None:
                items.append(item)

    needle = query.strip().lower()
    if needle:
        items = [item for item in items if needle in item.name.lower() or needle in item.rarity.lower()]

    if sort_by == "value":
        items.sort(key=lambda item: item.current_price if item.current_price is not None else item.base_value, reverse=True)
    elif sort_by == "rarity":
        items.sort(key=lambda item: RARITY_ORDER.get(item.rarity, -1), reverse=True)
    else:
        items.sort(key=lambda item: item.name.lower())
    return items


def partition_codes(rows: Iterable[Mapping[str, Any]]) -> tuple[list[Code], list[Code]]:
    active: list[Code] = []
    expired: list[Code] = []
    for row in rows:
        if "code" not in row:
            continue
        code = Code.from_mapping(row)
        (active if code.is_active else expired).append(code)
    return active, expired


def validate_code(rows: Iterable[Mapping[str, Any]], code: str) -> bool:
    """True when ``code`` names an active code, ignoring case and surrounding spaces."""
    wanted = code.strip().lower()
    if not wanted:
        return False
    active, _ = partition_codes(rows)
    return any(candidate.code.lower() == wanted for candidate in active)
