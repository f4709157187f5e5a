"""Warpdrive exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Dataset integrity failures are fatal to a run; cancellation is not.
"""

from __future__ import annotations


class WarpdriveError(Exception):
    """Base exception for all Warpdrive failures."""


class WarpdriveConfigError(WarpdriveError):
    """Raised for invalid runtime configuration."""


class WarpdriveSamplerError(WarpdriveError):
    """Raised when the sampling pipeline cannot be started."""


class WarpdriveTrainingError(WarpdriveError):
    """Raised for training loop failures."""


class ImageDecodeError(WarpdriveTrainingError):
    """Raised when an image payload cannot be decoded into features."""


class CancellationError(WarpdriveError):
    """Raised when work stops because shutdown was requested.

    This is the expected outcome of a caller stop and is never treated
    as a pipeline failure.
    """


class WarpdriveDatasetError(WarpdriveError):
    """Base for dataset and archive integrity failures."""

    def __init__(self, message: str, shard_path: str | None = None) -> None:
        super().__init__(message)
        self.shard_path = shard_path


class DiscoveryError(WarpdriveDatasetError):
    """Raised when a shard discovery walk cannot complete."""


class ShardOpenError(WarpdriveDatasetError):
    """Raised when a shard archive cannot be opened."""


class ShardReadError(WarpdriveDatasetError):
    """Raised when a shard archive is corrupt mid-stream."""


class LabelFormatError(WarpdriveDatasetError):
    """Raised when a ``.cls`` payload is not a decimal integer."""


class PendingOverflowError(WarpdriveDatasetError):
    """Raised when incomplete pairs exceed the pending cap."""


class IncompletePairsError(WarpdriveDatasetError):
    """Raised when a shard ends with unmatched image or label entries."""

    def __init__(self, message: str, shard_path: str | None, incomplete_count: int) -> None:
        super().__init__(message, shard_path)
        self.incomplete_count = incomplete_count
