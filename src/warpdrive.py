"""Public SDK surface for Warpdrive.

This module provides a stable import path for library users.
It re-exports the sampler entry points, shard helpers, and typed models.
"""

from __future__ import annotations

from core.config import TrainingConfig, load_training_config
from core.errors import (
    CancellationError,
    DiscoveryError,
    IncompletePairsError,
    LabelFormatError,
    PendingOverflowError,
    ShardOpenError,
    ShardReadError,
    WarpdriveDatasetError,
    WarpdriveError,
)
from core.logging_config import configure_logging
from core.types import Sample, SamplerOptions, TrainingRunOptions, TrainingRunResult
from ingest.shard_discovery import discover_by_root, discover_shards
from ingest.shard_reader import stream_shard
from serve.shard_sampler import ShardSampler, start_sampler
from serve.training_runner import run_training

__all__ = [
    "CancellationError",
    "DiscoveryError",
    "IncompletePairsError",
    "LabelFormatError",
    "PendingOverflowError",
    "Sample",
    "SamplerOptions",
    "ShardOpenError",
    "ShardReadError",
    "ShardSampler",
    "TrainingConfig",
    "TrainingRunOptions",
    "TrainingRunResult",
    "WarpdriveDatasetError",
    "WarpdriveError",
    "configure_logging",
    "discover_by_root",
    "discover_shards",
    "load_training_config",
    "run_training",
    "start_sampler",
    "stream_shard",
]
