from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple

from landb.errors import ScoringError
from landb.islands import DIVINITY, GHOST, MAIN, SCORPION, WIZARD
from landb.schema import Land


# Prosperity point = base(island, level) * weight^2 * size * landlord
# - base: per island, per level (levels 1 and 2 only)
# - size: 1 for 1x1 parcels, otherwise region_weight - 0.5
# - landlord: indexed by sign_type
BASE_POINTS: Dict[int, Dict[int, int]] = {
    MAIN: {1: 100, 2: 300},
    DIVINITY: {1: 200, 2: 600},
    WIZARD: {1: 150, 2: 450},
    SCORPION: {1: 150, 2: 450},
    GHOST: {1: 150, 2: 450},
}

LANDLORD_MULTIPLIERS: Tuple[float, ...] = (1.0, 1.1, 1.2, 1.5, 2.0)

# Reserved/promotional parcels that never earn points.
EXCLUDED_TOKEN_IDS: Dict[int, FrozenSet[int]] = {
    MAIN: frozenset(),
    DIVINITY: frozenset(),
    WIZARD: frozenset(),
    SCORPION: frozenset(),
    GHOST: frozenset(),
}


@dataclass(frozen=True)
class ProsperityTable:
    base_points: Mapping[int, Mapping[int, float]] = field(
        default_factory=lambda: BASE_POINTS
    )
    landlord_multipliers: Tuple[float, ...] = LANDLORD_MULTIPLIERS
    excluded_token_ids: Mapping[int, FrozenSet[int]] = field(
        default_factory=lambda: EXCLUDED_TOKEN_IDS
    )

    def is_excluded(self, land: Land) -> bool:
        if land.skip_pp:
            return True
        return land.token_id in self.excluded_token_ids.get(land.island_id, frozenset())

    def base_point(self, island_id: int, level: int) -> float:
        per_level = self.base_points.get(island_id)
        if per_level is None:
            raise ScoringError(f"no base points for island {island_id}")
        if level not in per_level:
            raise ScoringError(f"no base points for level {level} on island {island_id}")
        return per_level[level]

    def landlord_multiplier(self, sign_type: int) -> float:
        if not 0 <= sign_type < len(self.landlord_multipliers):
            raise ScoringError(f"no landlord multiplier for signType {sign_type}")
        return self.landlord_multipliers[sign_type]


DEFAULT_PROSPERITY_TABLE = ProsperityTable()


def size_multiplier(region_weight: int) -> float:
    return 1.0 if region_weight == 1 else region_weight - 0.5


def calc_prosperity_point(
    land: Land, table: ProsperityTable = DEFAULT_PROSPERITY_TABLE
) -> float:
    if table.is_excluded(land):
        return 0
    return (
        table.base_point(land.island_id, land.level)
        * land.region_weight**2
        * size_multiplier(land.region_weight)
        * table.landlord_multiplier(land.sign_type)
    )


def calc_prosperity_points(
    lands: Iterable[Land], table: ProsperityTable = DEFAULT_PROSPERITY_TABLE
) -> float:
    return sum(calc_prosperity_point(land, table) for land in lands)
