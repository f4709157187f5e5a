"""Unit tests for training artifact persistence."""

from __future__ import annotations

import json

from serve.training_artifacts import ensure_training_output_dir, save_training_history


def test_save_training_history_writes_windows(tmp_path) -> None:
    """History file should hold step count and every logged window."""
    output_dir = ensure_training_output_dir(str(tmp_path / "nested" / "out"))
    windows = [{"step": 2, "images_per_sec": 10.0, "data_ms": 1.0, "compute_ms": 2.0, "loss": 0.5}]

    history_path = save_training_history(output_dir, windows, steps_completed=2)
    payload = json.loads(history_path.read_text(encoding="utf-8"))

    assert history_path.name == "history.json"
    assert payload == {"steps_completed": 2, "windows": windows}
