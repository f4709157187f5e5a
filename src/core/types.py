"""Shared typed models.

This module defines immutable data models used by the shard readers,
the sampling pipeline, and the training loop to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence


@dataclass(frozen=True)
class Sample:
    """One paired training record read from a shard.

    Attributes:
        key: Base filename shared by the image and label entries.
        image: Raw encoded image bytes.
        label: Integer class label parsed from the ``.cls`` entry.
    """

    key: str
    image: bytes
    label: int


@dataclass(frozen=True)
class ShardJob:
    """One unit of shard work issued by the job producer.

    Attributes:
        sequence_id: Strictly increasing issuance number, the ordering key.
        root: Dataset root the shard was discovered under.
        path: Absolute shard archive path.
    """

    sequence_id: int
    root: str
    path: str


@dataclass(frozen=True)
class SamplerOptions:
    """Multi-root sampler options.

    Attributes:
        roots: Mapping of dataset root to its sorted shard paths.
        seed: Seed for per-cycle shard shuffles. ``None`` selects the default.
        worker_count: Concurrent shard workers. ``None`` selects the default.
        pending_cap: Maximum incomplete pairs held per shard.
    """

    roots: Mapping[str, Sequence[str]]
    seed: int | None = None
    worker_count: int | None = None
    pending_cap: int | None = None


@dataclass(frozen=True)
class TrainingBatch:
    """Minibatch of feature vectors and labels."""

    inputs: Sequence[Sequence[float]]
    labels: Sequence[int]


@dataclass(frozen=True)
class ThroughputSnapshot:
    """Aggregated metrics for one logging window.

    Attributes:
        images_per_sec: Samples per second over data and compute time.
        avg_data_ms: Mean per-step batch assembly time in milliseconds.
        avg_compute_ms: Mean per-step training time in milliseconds.
        last_loss: Loss of the most recent step.
    """

    images_per_sec: float
    avg_data_ms: float
    avg_compute_ms: float
    last_loss: float


@dataclass(frozen=True)
class TrainingRunOptions:
    """Options for one training run.

    Attributes:
        roots: Dataset root directories to sample from.
        steps: Number of training steps.
        batch_size: Samples per step.
        num_workers: Concurrent shard workers.
        seed: Seed for shard shuffling and model initialization.
        log_every: Steps between metric snapshots.
        pending_cap: Maximum incomplete pairs held per shard.
        output_dir: Optional directory for the metrics history artifact.
    """

    roots: tuple[str, ...]
    steps: int
    batch_size: int
    num_workers: int
    seed: int
    log_every: int
    pending_cap: int
    output_dir: str | None = None


@dataclass(frozen=True)
class TrainingRunResult:
    """Summary returned by a completed training run.

    Attributes:
        steps_completed: Number of optimizer steps executed.
        samples_seen: Number of samples consumed by the model.
        last_loss: Loss of the final step.
        history_path: Metrics history path when an output dir was set.
    """

    steps_completed: int
    samples_seen: int
    last_loss: float
    history_path: str | None = None
