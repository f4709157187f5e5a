"""Unit tests for training progress reporting helpers."""

from __future__ import annotations

from core.types import ThroughputSnapshot
from serve.training_progress import TrainingProgressTracker


class _FakeLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []

    def info(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))


def _snapshot(loss: float) -> ThroughputSnapshot:
    return ThroughputSnapshot(
        images_per_sec=2133.333,
        avg_data_ms=7.5,
        avg_compute_ms=17.5,
        last_loss=loss,
    )


def test_tracker_logs_only_on_interval_steps(monkeypatch) -> None:
    """Step metrics should be emitted on multiples of log_every."""
    fake_logger = _FakeLogger()
    monkeypatch.setattr("serve.training_progress._LOGGER", fake_logger)
    tracker = TrainingProgressTracker(total_steps=6, batch_size=4, log_every=2)

    tracker.log_training_started({"/a": ["s0", "s1"], "/b": ["s2"]}, num_workers=2, seed=1)
    for step in range(1, 7):
        if tracker.should_log_step(step):
            tracker.log_step_metrics(step, _snapshot(1.0 / step))
    tracker.log_training_completed(6, 0.25)

    event_names = [event for event, _ in fake_logger.events]

    assert event_names == [
        "training_started",
        "training_step_metrics",
        "training_step_metrics",
        "training_step_metrics",
        "training_completed",
    ]
    assert fake_logger.events[0][1]["shard_counts"] == {"/a": 2, "/b": 1}


def test_tracker_keeps_rounded_history_rows(monkeypatch) -> None:
    """Logged windows should be retained for the history artifact."""
    monkeypatch.setattr("serve.training_progress._LOGGER", _FakeLogger())
    tracker = TrainingProgressTracker(total_steps=4, batch_size=32, log_every=4)

    tracker.log_step_metrics(4, _snapshot(0.81234))

    assert tracker.snapshots == [
        {
            "step": 4,
            "images_per_sec": 2133.3,
            "data_ms": 7.5,
            "compute_ms": 17.5,
            "loss": 0.8123,
        }
    ]
