"""Unit tests for the streaming training runner."""

from __future__ import annotations

import json
import threading

import pytest

from core.errors import CancellationError, WarpdriveSamplerError, WarpdriveTrainingError
from core.types import Sample, TrainingRunOptions
from serve.training_runner import clamp_label, next_batch, run_training
from tests.shard_fixtures import png_bytes, write_paired_shard


class _FakeLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []

    def debug(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))


def _options(roots: tuple[str, ...], **overrides) -> TrainingRunOptions:
    values = {
        "roots": roots,
        "steps": 3,
        "batch_size": 2,
        "num_workers": 2,
        "seed": 1,
        "log_every": 1,
        "pending_cap": 16,
    }
    values.update(overrides)
    return TrainingRunOptions(**values)


def test_clamp_label_maps_into_class_range() -> None:
    """Negative labels clamp to zero and large labels wrap."""
    assert clamp_label(-4) == 0
    assert clamp_label(999) == 999
    assert clamp_label(1000) == 0
    assert clamp_label(2005) == 5


def test_next_batch_skips_undecodable_images(monkeypatch) -> None:
    """Samples whose image cannot be decoded should be skipped."""
    fake_logger = _FakeLogger()
    monkeypatch.setattr("serve.training_runner._LOGGER", fake_logger)
    samples = iter(
        [
            Sample(key="bad", image=b"not an image", label=1),
            Sample(key="ok1", image=png_bytes(), label=-3),
            Sample(key="ok2", image=png_bytes(), label=1003),
        ]
    )

    batch = next_batch(samples, 2)

    assert list(batch.labels) == [0, 3]
    assert len(batch.inputs) == 2
    assert fake_logger.events[0][0] == "sample_skipped"


def test_next_batch_raises_when_stream_ends_early() -> None:
    """A stream that runs dry mid-batch should fail the run."""
    with pytest.raises(WarpdriveTrainingError, match="1 of 2"):
        next_batch(iter([Sample(key="k", image=png_bytes(), label=0)]), 2)


def test_next_batch_raises_cancellation_when_stopped() -> None:
    """A set stop event should turn an ended stream into cancellation."""
    stop_event = threading.Event()
    stop_event.set()

    with pytest.raises(CancellationError):
        next_batch(iter([]), 2, stop_event)


def test_run_training_completes_and_writes_history(tmp_path) -> None:
    """A short run over two roots should finish and persist its windows."""
    write_paired_shard(tmp_path / "A" / "shard-000000.tar", [("a0", 0), ("a1", 1)])
    write_paired_shard(tmp_path / "B" / "shard-000000.tar", [("b0", 2)])
    roots = (str(tmp_path / "A"), str(tmp_path / "B"))

    result = run_training(_options(roots, output_dir=str(tmp_path / "out")))
    payload = json.loads((tmp_path / "out" / "history.json").read_text(encoding="utf-8"))

    assert result.steps_completed == 3
    assert result.samples_seen == 6
    assert result.last_loss > 0.0
    assert payload["steps_completed"] == 3
    assert [row["step"] for row in payload["windows"]] == [1, 2, 3]


def test_run_training_rejects_root_without_shards(tmp_path) -> None:
    """Every configured root must contain at least one shard."""
    write_paired_shard(tmp_path / "A" / "shard-000000.tar", [("a0", 0)])
    (tmp_path / "B").mkdir()

    with pytest.raises(WarpdriveSamplerError, match="No shards"):
        run_training(_options((str(tmp_path / "A"), str(tmp_path / "B"))))


def test_run_training_rejects_invalid_steps(tmp_path) -> None:
    """Non-positive step counts should be rejected before discovery."""
    with pytest.raises(WarpdriveTrainingError):
        run_training(_options((str(tmp_path),), steps=0))
