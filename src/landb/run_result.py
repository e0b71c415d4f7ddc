from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class RefreshResult:
    status: str  # ok | throttled | read_only | failed
    requested_at: Optional[float] = None
    fetched_at: Optional[float] = None
    next_allowed_at: Optional[float] = None
    island_counts: Dict[int, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def lands_count(self) -> int:
        return sum(self.island_counts.values())

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "ok": self.ok,
            "requested_at": self.requested_at,
            "fetched_at": self.fetched_at,
            "next_allowed_at": self.next_allowed_at,
            "island_counts": {str(k): v for k, v in self.island_counts.items()},
            "lands_count": self.lands_count,
            "warnings": list(self.warnings),
            "error": self.error,
        }
