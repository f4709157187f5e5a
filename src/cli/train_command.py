"""Train command wiring for Warpdrive CLI.

This module isolates train command parser and execution logic.
It merges the YAML run config with command-line overrides.
"""

from __future__ import annotations

import argparse
import signal
import threading
from pathlib import Path
from typing import Any

from core.config import (
    ConfigOverrides,
    TrainingConfig,
    apply_overrides,
    load_training_config,
    resolve_config_path,
)
from serve.training_runner import run_training


def run_train_command(args: argparse.Namespace) -> int:
    """Handle train command invocation."""
    config = apply_overrides(_load_base_config(args.config), _build_overrides(args))
    options = config.to_run_options()
    stop_event = threading.Event()
    previous_handler = signal.signal(signal.SIGTERM, lambda *_: stop_event.set())
    try:
        result = run_training(options, stop_event)
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
    print(f"steps_completed={result.steps_completed}")
    print(f"samples_seen={result.samples_seen}")
    print(f"last_loss={result.last_loss:.6f}")
    print(f"history_path={result.history_path or '-'}")
    return 0


def add_train_command(subparsers: Any) -> None:
    """Register train subcommand."""
    parser = subparsers.add_parser(
        "train",
        help="Train the demo classifier on shards sampled round-robin across roots",
    )
    parser.add_argument(
        "--config",
        help="YAML run config path (defaults to WARPDRIVE_CONFIG or configs/demo.yaml)",
    )
    parser.add_argument(
        "--train-root",
        action="append",
        dest="train_roots",
        help="Dataset root directory; repeat for several roots (replaces config roots)",
    )
    parser.add_argument("--steps", type=int, help="Number of training steps")
    parser.add_argument("--batch-size", type=int, help="Samples per step")
    parser.add_argument("--num-workers", type=int, help="Concurrent shard workers")
    parser.add_argument("--seed", type=int, help="Shuffle and initialization seed")
    parser.add_argument("--log-every", type=int, help="Steps between metric snapshots")
    parser.add_argument(
        "--pending-cap",
        type=int,
        help="Maximum incomplete image/label pairs held per shard",
    )
    parser.add_argument("--output-dir", help="Directory for the metrics history file")


def _load_base_config(config_arg: str | None) -> TrainingConfig:
    """Load the run config; a missing default config yields empty defaults."""
    if config_arg:
        return load_training_config(config_arg)
    default_path = resolve_config_path()
    if Path(default_path).exists():
        return load_training_config(default_path)
    return TrainingConfig()


def _build_overrides(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        train_roots=tuple(args.train_roots) if args.train_roots else None,
        steps=args.steps,
        batch_size=args.batch_size,
        num_workers=args.num_workers,
        seed=args.seed,
        log_every=args.log_every,
        pending_cap=args.pending_cap,
        output_dir=args.output_dir,
    )
