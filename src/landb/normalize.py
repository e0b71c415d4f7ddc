from __future__ import annotations

import logging
from dataclasses import MISSING, fields
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from pydantic import ValidationError

from landb.errors import RecordError
from landb.records import RawLandRecord
from landb.schema import Land


logger = logging.getLogger("landb.normalize")

REQUIRED_FIELDS = ("region_id", "token_id", "x", "y", "owner_address")

# Wire keys whose bad values would change identity, footprint or score.
_UNDROPPABLE_KEYS = frozenset(
    {
        "regionWeight", "region_weight",
        "regionId", "region_id",
        "tokenId", "token_id",
        "x", "y",
        "userAddress", "ownerAddress", "owner_address",
    }
)

_LAND_DEFAULTS: Dict[str, Any] = {
    f.name: f.default for f in fields(Land) if f.default is not MISSING
}


def _validate(raw: Mapping[str, Any], warnings: List[str]) -> RawLandRecord:
    data = dict(raw)
    try:
        return RawLandRecord.model_validate(data)
    except ValidationError as exc:
        # Drop the offending keys and keep going with what is usable.
        for err in exc.errors():
            loc = err.get("loc") or ()
            key = str(loc[0]) if loc else ""
            if key in _UNDROPPABLE_KEYS:
                raise RecordError(
                    f"invalid value for field '{key}': {data.get(key)!r}"
                ) from exc
            if key in data:
                warnings.append(f"invalid value for field '{key}'")
                data.pop(key)
    try:
        return RawLandRecord.model_validate(data)
    except ValidationError as exc:
        raise RecordError(f"unreadable land record: {exc}") from exc


def normalize_record(
    raw: Mapping[str, Any] | None, island_id: int
) -> Tuple[Land, List[str]]:
    """Turn one raw remote record into a Land.

    Rules:
    - Missing keys and None values take the Land default.
    - Unknown keys are reported as warnings and otherwise ignored.
    - region_id, token_id, x, y and the owner address are required.
    - The island is the one the record was fetched for.
    """

    if not isinstance(raw, Mapping):
        raise RecordError(f"land record must be an object, got {type(raw).__name__}")

    warnings: List[str] = []
    record = _validate(raw, warnings)

    for name in sorted(record.unknown_fields()):
        warnings.append(f"unknown field '{name}'")

    values = record.model_dump(exclude={"island_id"})
    if values.get("owner_address") is not None:
        values["owner_address"] = str(values["owner_address"]).strip()
    missing = [
        name
        for name in REQUIRED_FIELDS
        if values.get(name) is None or values.get(name) == ""
    ]
    if missing:
        raise RecordError(
            f"land record missing required field(s): {', '.join(missing)}"
        )

    if record.island_id is not None and record.island_id != island_id:
        warnings.append(
            f"record islandId={record.island_id} differs from fetched island {island_id}"
        )

    data: Dict[str, Any] = {}
    for name, default in _LAND_DEFAULTS.items():
        value = values.get(name)
        data[name] = default if value is None else value
    data["island_id"] = int(island_id)

    if int(data["region_weight"]) < 1:
        raise RecordError(
            f"regionWeight must be >= 1 (tokenId={data['token_id']}, "
            f"regionWeight={data['region_weight']})"
        )

    return Land(**data), warnings


def normalize_records(
    raws: Iterable[Mapping[str, Any]], island_id: int
) -> Tuple[List[Land], List[str]]:
    """Normalize a batch; each distinct warning is logged once per batch."""

    lands: List[Land] = []
    seen: Dict[str, int] = {}
    for raw in raws:
        land, warnings = normalize_record(raw, island_id)
        lands.append(land)
        for w in warnings:
            seen[w] = seen.get(w, 0) + 1

    summary: List[str] = []
    for message, n in seen.items():
        logger.warning("island %s: %s (%d record(s))", island_id, message, n)
        summary.append(f"island {island_id}: {message} ({n} record(s))")
    return lands, summary
