"""Rolling throughput and timing metrics for the training loop."""

from __future__ import annotations

from dataclasses import dataclass

from core.types import ThroughputSnapshot


@dataclass
class ThroughputWindow:
    """Accumulate per-step timings until the next snapshot."""

    samples: int = 0
    data_seconds: float = 0.0
    compute_seconds: float = 0.0
    steps: int = 0
    last_loss: float = 0.0

    def record(
        self,
        batch_size: int,
        data_seconds: float,
        compute_seconds: float,
        loss: float,
    ) -> None:
        """Add one training step to the window."""
        self.samples += batch_size
        self.data_seconds += data_seconds
        self.compute_seconds += compute_seconds
        self.steps += 1
        self.last_loss = loss

    def snapshot(self) -> ThroughputSnapshot:
        """Return aggregated metrics and reset the window.

        The last loss is carried over so an empty window still reports it.
        """
        total_seconds = self.data_seconds + self.compute_seconds
        images_per_sec = self.samples / total_seconds if total_seconds > 0 else 0.0
        avg_data_ms = avg_compute_ms = 0.0
        if self.steps > 0:
            avg_data_ms = self.data_seconds * 1000.0 / self.steps
            avg_compute_ms = self.compute_seconds * 1000.0 / self.steps
        snapshot = ThroughputSnapshot(
            images_per_sec=images_per_sec,
            avg_data_ms=avg_data_ms,
            avg_compute_ms=avg_compute_ms,
            last_loss=self.last_loss,
        )
        self.samples = 0
        self.data_seconds = 0.0
        self.compute_seconds = 0.0
        self.steps = 0
        return snapshot
