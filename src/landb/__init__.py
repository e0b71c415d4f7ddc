"""Local, queryable snapshot of a virtual-land registry."""

from .config import Settings, get_settings
from .errors import (
    ConfigError,
    FetchError,
    LandbError,
    RecordError,
    ScoringError,
    SnapshotMissingError,
)
from .fetcher import FixtureFetcher, LandFetcher
from .repository import LandRepository, open_repository
from .run_result import RefreshResult
from .schema import Count, Land, OwnerInfo
from .scoring import ProsperityTable
from .store import LandSQLite

__all__ = [
    "ConfigError",
    "Count",
    "FetchError",
    "FixtureFetcher",
    "Land",
    "LandFetcher",
    "LandRepository",
    "LandSQLite",
    "LandbError",
    "OwnerInfo",
    "ProsperityTable",
    "RecordError",
    "RefreshResult",
    "ScoringError",
    "Settings",
    "SnapshotMissingError",
    "get_settings",
    "open_repository",
]
