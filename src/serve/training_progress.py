"""Structured training progress reporting.

This module emits run start, periodic step metrics, and run completion
events for the streaming training loop.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from core.logging_config import get_logger
from core.types import ThroughputSnapshot

_LOGGER = get_logger(__name__)


@dataclass
class TrainingProgressTracker:
    """Track and emit training progress events across steps."""

    total_steps: int
    batch_size: int
    log_every: int
    run_started_at: float = field(default_factory=time.monotonic)
    snapshots: list[dict[str, float]] = field(default_factory=list)

    def log_training_started(
        self,
        roots: Mapping[str, Sequence[str]],
        num_workers: int,
        seed: int,
    ) -> None:
        """Log one event when a training run starts."""
        _LOGGER.info(
            "training_started",
            total_steps=self.total_steps,
            batch_size=self.batch_size,
            num_workers=num_workers,
            seed=seed,
            shard_counts={root: len(paths) for root, paths in roots.items()},
        )

    def should_log_step(self, step: int) -> bool:
        """Return true when the step closes a metrics window."""
        return step % self.log_every == 0

    def log_step_metrics(self, step: int, snapshot: ThroughputSnapshot) -> None:
        """Log one metrics window and keep it for the run history."""
        row = {
            "step": step,
            "images_per_sec": round(snapshot.images_per_sec, 1),
            "data_ms": round(snapshot.avg_data_ms, 2),
            "compute_ms": round(snapshot.avg_compute_ms, 2),
            "loss": round(snapshot.last_loss, 4),
        }
        self.snapshots.append(row)
        _LOGGER.info(
            "training_step_metrics",
            total_steps=self.total_steps,
            progress=round(_progress_fraction(step, self.total_steps), 3),
            **row,
        )

    def log_training_completed(self, steps_completed: int, last_loss: float) -> None:
        """Log run completion summary with elapsed time."""
        _LOGGER.info(
            "training_completed",
            steps_completed=steps_completed,
            total_steps=self.total_steps,
            last_loss=round(last_loss, 6),
            run_elapsed_seconds=round(time.monotonic() - self.run_started_at, 3),
        )


def _progress_fraction(step: int, total_steps: int) -> float:
    """Compute bounded run progress fraction."""
    if total_steps <= 0:
        return 0.0
    return min(1.0, max(0.0, step / total_steps))
