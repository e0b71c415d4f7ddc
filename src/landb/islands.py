from __future__ import annotations

from typing import Dict, List, Sequence, Union

from landb.errors import ConfigError


MAIN = 0
DIVINITY = 1
WIZARD = 2
SCORPION = 3
GHOST = 4

_ISLANDS: Dict[str, int] = {
    "main": MAIN,
    "divinity": DIVINITY,
    "wizard": WIZARD,
    "scorpion": SCORPION,
    "ghost": GHOST,
}

# Order matters: the first island is the primary one.
DEFAULT_ISLANDS: List[int] = [MAIN, DIVINITY, WIZARD, SCORPION, GHOST]


def _norm(name: str) -> str:
    return (name or "").strip().lower().replace("_", " ")


def canonicalize_island(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Unknown island: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ConfigError(f"Unknown island: {value!r}")
        return value
    key = _norm(str(value))
    if key.isdigit():
        return int(key)
    if key in _ISLANDS:
        return _ISLANDS[key]
    raise ConfigError(
        f"Unknown island: {value!r} (known: {', '.join(known_islands())})"
    )


def island_name(island_id: int) -> str:
    for name, iid in _ISLANDS.items():
        if iid == island_id:
            return name
    return f"island-{island_id}"


def parse_island_list(raw: str | Sequence[Union[int, str]] | None) -> List[int]:
    """Parse a comma separated (or already split) island list, keeping order.

    Duplicates are dropped; an empty value yields the default island order.
    """

    if raw is None:
        return list(DEFAULT_ISLANDS)
    if isinstance(raw, str):
        parts = [p.strip() for p in raw.split(",") if p.strip()]
    else:
        parts = list(raw)
    out: List[int] = []
    for part in parts:
        iid = canonicalize_island(part)
        if iid not in out:
            out.append(iid)
    return out or list(DEFAULT_ISLANDS)


def known_islands() -> List[str]:
    return sorted(_ISLANDS, key=_ISLANDS.get)
