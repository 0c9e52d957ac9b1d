from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping


logger = logging.getLogger(__name__)


def _identity(row: Mapping[str, Any], key: str) -> Any | None:
    if key not in row:
        return None
    value = row[key]
    try:
        hash(value)
    except TypeError:
        return None
    return value


def merge_by_key(
    local: Iterable[Mapping[str, Any]],
    remote: Iterable[Mapping[str, Any]],
    key: str,
) -> list[dict[str, Any]]:
    """Overlay remote rows onto the local baseline, matched on ``key``.

    Local rows keep their order and are never dropped. A remote row whose key
    is already present is shallow-merged over it (remote fields win, local-only
    fields stay); any other remote row is appended in remote order. Neither
    input is mutated.
    """
    merged: list[dict[str, Any]] = [dict(row) for row in local]
    positions: dict[Any, int] = {}
    for index, row in enumerate(merged):
        identity = _identity(row, key)
        if identity is not None:
            positions.setdefault(identity, index)

    for remote_row in remote:
        identity = _identity(remote_row, key)
        if identity is None:
            logger.debug("Dropping remote row without a usable identity key", extra={"merge_key": key})
            continue
        index = positions.get(identity)
        if index is None:
            positions[identity] = len(merged)
            merged.append(dict(remote_row))
        else:
            merged[index] = {**merged[index], **remote_row}

    return merged
