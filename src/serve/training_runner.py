"""Streaming training workflow orchestration.

This module discovers shards, starts the multi-root sampler, and drives
the linear classifier for a fixed number of steps while recording data
wait and compute timings per step.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Iterator

from core.constants import DEFAULT_NUM_CLASSES
from core.errors import (
    CancellationError,
    ImageDecodeError,
    WarpdriveSamplerError,
    WarpdriveTrainingError,
)
from core.logging_config import get_logger
from core.types import (
    Sample,
    SamplerOptions,
    TrainingBatch,
    TrainingRunOptions,
    TrainingRunResult,
)
from ingest.shard_discovery import discover_by_root
from serve.image_features import extract_features
from serve.linear_classifier import LinearClassifier
from serve.shard_sampler import start_sampler
from serve.throughput_window import ThroughputWindow
from serve.training_artifacts import ensure_training_output_dir, save_training_history
from serve.training_progress import TrainingProgressTracker

_LOGGER = get_logger(__name__)


def run_training(
    options: TrainingRunOptions,
    stop_event: threading.Event | None = None,
) -> TrainingRunResult:
    """Run a full streaming training workflow.

    Args:
        options: Validated run options.
        stop_event: Optional external stop signal, e.g. set on SIGTERM.

    Returns:
        Summary of the completed run.

    Raises:
        DiscoveryError: If a root cannot be walked.
        WarpdriveSamplerError: If a root holds no shards.
        WarpdriveDatasetError: If any shard fails integrity checks.
        CancellationError: If the stop event is set before the run finishes.
    """
    _validate_run_options(options)
    roots = discover_by_root(options.roots, stop_event)
    for root, shard_paths in roots.items():
        if not shard_paths:
            raise WarpdriveSamplerError(
                f"No shards discovered under {root}. "
                "Add files named like shard-000000.tar or remove the root."
            )
    tracker = TrainingProgressTracker(
        total_steps=options.steps,
        batch_size=options.batch_size,
        log_every=options.log_every,
    )
    tracker.log_training_started(roots, num_workers=options.num_workers, seed=options.seed)
    model = LinearClassifier(seed=options.seed)
    window = ThroughputWindow()
    sampler_options = SamplerOptions(
        roots=roots,
        seed=options.seed,
        worker_count=options.num_workers,
        pending_cap=options.pending_cap,
    )
    steps_completed = 0
    last_loss = 0.0
    with start_sampler(sampler_options, stop_event) as sampler:
        samples = iter(sampler)
        for step in range(1, options.steps + 1):
            data_started = time.perf_counter()
            batch = next_batch(samples, options.batch_size, stop_event)
            data_seconds = time.perf_counter() - data_started
            compute_started = time.perf_counter()
            last_loss = model.train_step(batch)
            compute_seconds = time.perf_counter() - compute_started
            window.record(options.batch_size, data_seconds, compute_seconds, last_loss)
            steps_completed = step
            if tracker.should_log_step(step):
                tracker.log_step_metrics(step, window.snapshot())
    tracker.log_training_completed(steps_completed, last_loss)
    history_path = None
    if options.output_dir:
        output_dir = ensure_training_output_dir(options.output_dir)
        history_path = str(save_training_history(output_dir, tracker.snapshots, steps_completed))
    return TrainingRunResult(
        steps_completed=steps_completed,
        samples_seen=steps_completed * options.batch_size,
        last_loss=last_loss,
        history_path=history_path,
    )


def next_batch(
    samples: Iterator[Sample],
    batch_size: int,
    stop_event: threading.Event | None = None,
) -> TrainingBatch:
    """Pull samples until a full batch of decodable images is assembled.

    Args:
        samples: Ordered sample iterator from the sampler.
        batch_size: Number of samples per batch.
        stop_event: Optional external stop signal.

    Returns:
        Batch of feature vectors and clamped labels.

    Raises:
        CancellationError: If the stop event is set first.
        WarpdriveTrainingError: If the stream ends before the batch is full.
    """
    inputs: list[Any] = []
    labels: list[int] = []
    while len(inputs) < batch_size:
        sample = next(samples, None)
        if stop_event is not None and stop_event.is_set():
            raise CancellationError("Training run was cancelled while assembling a batch.")
        if sample is None:
            raise WarpdriveTrainingError(
                f"Sample stream ended after {len(inputs)} of {batch_size} batch samples."
            )
        try:
            features = extract_features(sample.image)
        except ImageDecodeError as error:
            _LOGGER.debug("sample_skipped", key=sample.key, reason=str(error))
            continue
        inputs.append(features)
        labels.append(clamp_label(sample.label))
    return TrainingBatch(inputs=inputs, labels=labels)


def clamp_label(label: int, num_classes: int = DEFAULT_NUM_CLASSES) -> int:
    """Map a raw label into ``[0, num_classes)``; negatives become 0."""
    if label < 0:
        return 0
    if label >= num_classes:
        return label % num_classes
    return label


def _validate_run_options(options: TrainingRunOptions) -> None:
    if not options.roots:
        raise WarpdriveTrainingError("At least one dataset root is required to train.")
    if options.steps <= 0:
        raise WarpdriveTrainingError(f"Steps must be > 0, got {options.steps}.")
    if options.batch_size <= 0:
        raise WarpdriveTrainingError(f"Batch size must be > 0, got {options.batch_size}.")
    if options.log_every <= 0:
        raise WarpdriveTrainingError(f"log_every must be > 0, got {options.log_every}.")
