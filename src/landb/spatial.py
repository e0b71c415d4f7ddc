from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Tuple

from landb.schema import Land, owner_key


@dataclass(frozen=True)
class Bounds:
    """Inclusive cell rectangle [start_x, end_x] x [start_y, end_y]."""

    start_x: int
    end_x: int
    start_y: int
    end_y: int


def contains_where(x: int, y: int) -> Tuple[str, List[Any]]:
    """WHERE clause for the parcel whose footprint covers cell (x, y)."""

    sql = "x <= ? AND x + region_weight > ? AND y - region_weight < ? AND y >= ?"
    return sql, [int(x), int(x), int(y), int(y)]


def padded_bounds(land: Land, padding: int = 1) -> Bounds:
    w = land.region_weight
    return Bounds(
        start_x=land.x - padding,
        end_x=land.x + w + padding - 1,
        start_y=land.y - w - padding + 1,
        end_y=land.y + padding,
    )


def adjacent_where(land: Land, padding: int = 1) -> Tuple[str, List[Any]]:
    if padding < 0:
        raise ValueError("padding must be >= 0")
    b = padded_bounds(land, padding)
    sql = (
        "island_id = ?"
        " AND x + region_weight - 1 >= ?"
        " AND x <= ?"
        " AND y >= ?"
        " AND y - region_weight + 1 <= ?"
        " AND region_id != ?"
    )
    return sql, [land.island_id, b.start_x, b.end_x, b.start_y, b.end_y, land.region_id]


def find_neighbors(
    owner_address: str,
    own_lands: Iterable[Land],
    adjacent: Callable[[Land], Iterable[Land]],
    *,
    descending: bool = True,
) -> Dict[str, List[Land]]:
    """Group the foreign parcels touching `own_lands` by their owner.

    A foreign parcel touching several of the owner's parcels is kept once
    (by token_id). Each group is sorted by (x, y); groups are ordered by
    size, then owner address ascending regardless of `descending`.
    """

    me = owner_key(owner_address)
    groups: Dict[str, List[Land]] = {}
    seen_tokens = set()
    for mine in own_lands:
        for other in adjacent(mine):
            key = other.owner
            if key == me:
                continue
            if other.token_id in seen_tokens:
                continue
            seen_tokens.add(other.token_id)
            groups.setdefault(key, []).append(other)

    for lands in groups.values():
        lands.sort(key=lambda land: (land.x, land.y))

    sign = -1 if descending else 1
    ordered = sorted(groups.items(), key=lambda kv: (sign * len(kv[1]), kv[0]))
    return OrderedDict(ordered)
