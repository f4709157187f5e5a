"""Training artifacts persistence.

This module writes the metric snapshots collected during a run so
throughput and loss can be inspected after the process exits.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.constants import DEFAULT_TRAIN_HISTORY_FILE_NAME
from core.errors import WarpdriveTrainingError


def ensure_training_output_dir(output_dir: str) -> Path:
    """Create and return resolved training output directory.

    Args:
        output_dir: Configured output directory.

    Returns:
        Resolved output path.

    Raises:
        WarpdriveTrainingError: If the directory cannot be created.
    """
    resolved_path = Path(output_dir).expanduser().resolve()
    try:
        resolved_path.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise WarpdriveTrainingError(
            f"Failed to create output directory {resolved_path}: {error}. "
            "Choose a writable --output-dir."
        ) from error
    return resolved_path


def save_training_history(
    output_dir: Path,
    snapshots: Sequence[dict[str, float]],
    steps_completed: int,
) -> Path:
    """Persist training history JSON file.

    Args:
        output_dir: Training output directory.
        snapshots: Logged metric windows, oldest first.
        steps_completed: Steps executed by the run.

    Returns:
        History JSON file path.
    """
    history_path = output_dir / DEFAULT_TRAIN_HISTORY_FILE_NAME
    payload = {
        "steps_completed": steps_completed,
        "windows": list(snapshots),
    }
    history_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return history_path
