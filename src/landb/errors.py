from __future__ import annotations


class LandbError(Exception):
    """Base class for land cache errors."""


class ConfigError(LandbError, ValueError):
    pass


class FetchError(LandbError):
    """Remote land service could not be read (transport, status or payload)."""

    def __init__(self, message: str, *, island_id: int | None = None) -> None:
        super().__init__(message)
        self.island_id = island_id


class RecordError(LandbError, ValueError):
    pass


class SnapshotMissingError(LandbError, RuntimeError):
    """Raised by read paths when no snapshot has been stored yet."""


class ScoringError(LandbError, LookupError):
    pass
