from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


def owner_key(address: Optional[str]) -> str:
    """Case-insensitive identity of an owner address."""

    return (address or "").strip().lower()


@dataclass(frozen=True)
class Land:
    """A square parcel anchored at its top-left corner.

    The footprint covers x in [x, x + region_weight) and
    y in (y - region_weight, y].
    """

    # identifiers
    island_id: int = 0
    region_id: int = 0
    token_id: int = 0

    # footprint
    region_weight: int = 1
    x: int = 0
    y: int = 0

    # display
    image_url: str = ""
    image_status: str = ""

    # scoring
    level: int = 1
    sign_type: int = 0

    # market
    on_market: int = 0
    market_x: int = 0
    market_y: int = 0

    owner_address: str = ""

    # pass-through
    user_token_id: Optional[int] = None
    creator: str = ""
    notify_exist: int = 0
    skip_pp: int = 0
    notify_id: Optional[int] = None

    @property
    def owner(self) -> str:
        return owner_key(self.owner_address)

    @property
    def area(self) -> int:
        return self.region_weight**2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


LAND_COLUMNS: List[str] = [
    "island_id",
    "region_id",
    "token_id",
    "region_weight",
    "x",
    "y",
    "image_url",
    "image_status",
    "level",
    "sign_type",
    "on_market",
    "market_x",
    "market_y",
    "owner_address",
    "user_token_id",
    "creator",
    "notify_exist",
    "skip_pp",
    "notify_id",
]


@dataclass(frozen=True)
class Count:
    region_weight: int
    level: int
    count: int
    island_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if self.island_id is None:
            out.pop("island_id")
        return out


@dataclass
class OwnerInfo:
    owner_address: str
    # ordered by (x, y)
    lands: List[Land] = field(default_factory=list)
    # 0: total area, k: number of k x k lands
    counts: List[int] = field(default_factory=lambda: [0])

    def add(self, land: Land) -> None:
        self.lands.append(land)
        weight = land.region_weight
        if len(self.counts) <= weight:
            self.counts.extend([0] * (weight + 1 - len(self.counts)))
        self.counts[0] += land.area
        self.counts[weight] += 1

    def count(self, region_weight: int) -> int:
        if 0 <= region_weight < len(self.counts):
            return self.counts[region_weight]
        return 0

    @property
    def total_area(self) -> int:
        return self.counts[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_address": self.owner_address,
            "lands": [land.to_dict() for land in self.lands],
            "counts": list(self.counts),
        }
