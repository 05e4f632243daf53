"""Custom exception hierarchy for trainfusion."""

from __future__ import annotations


class TrainFusionError(Exception):
    """Base exception for all trainfusion errors."""


class FusionConfigError(TrainFusionError):
    """Invalid or missing configuration."""


class DataIntegrityError(TrainFusionError):
    """Schedule data rejected while building the schedule store.

    ``file`` names the GTFS table the problem was found in (``stops``,
    ``routes``, ``trips`` or ``stop_times``) and ``field`` the offending
    column or attribute, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        file: str = "",
        field: str = "",
    ) -> None:
        self.file = file
        self.field = field
        super().__init__(message)


class FeedTransportError(TrainFusionError):
    """Live feed connection failure (network, non-200, stream closed, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class SnapshotParseError(TrainFusionError):
    """A ``snapshot`` event carried a payload that could not be parsed."""


class FeedStateError(TrainFusionError):
    """Lifecycle method called in a connection state that does not allow it."""
