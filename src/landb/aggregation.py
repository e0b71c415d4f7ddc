from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple

from landb.schema import Land, OwnerInfo


def build_owner_infos(lands: Iterable[Land]) -> Dict[str, OwnerInfo]:
    """One OwnerInfo per owner key, each with its lands ordered by (x, y)."""

    infos: Dict[str, OwnerInfo] = {}
    for land in lands:
        info = infos.get(land.owner)
        if info is None:
            info = OwnerInfo(owner_address=land.owner_address)
            infos[land.owner] = info
        info.add(land)
    for info in infos.values():
        info.lands.sort(key=lambda land: (land.x, land.y))
    return infos


def _rank_key(
    owner: str, info: OwnerInfo, max_weight: int, descending: bool
) -> Tuple[Tuple[int, ...], str]:
    sign = -1 if descending else 1
    numbers = [info.total_area]
    # Larger parcels break ties before smaller ones.
    numbers.extend(info.count(k) for k in range(max_weight, 0, -1))
    return tuple(sign * n for n in numbers), owner


def rank_owner_infos(
    infos: Dict[str, OwnerInfo], *, descending: bool = True
) -> Dict[str, OwnerInfo]:
    """Order owners by total area, then by count of each parcel size from
    the largest down, then by address. `descending` only flips the numbers.
    """

    max_weight = max((len(info.counts) - 1 for info in infos.values()), default=0)
    ordered: List[Tuple[str, OwnerInfo]] = sorted(
        infos.items(),
        key=lambda kv: _rank_key(kv[0], kv[1], max_weight, descending),
    )
    return OrderedDict(ordered)


def owner_info_map(
    lands: Iterable[Land], *, descending: bool = True
) -> Dict[str, OwnerInfo]:
    return rank_owner_infos(build_owner_infos(lands), descending=descending)
