"""Warpdrive CLI entry points.
This module exposes shard discovery and training commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Sequence

from cli.train_command import add_train_command, run_train_command
from core.errors import CancellationError, WarpdriveError
from core.logging_config import configure_logging
from ingest.shard_discovery import discover_by_root


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="warpdrive",
        description="Multi-root shard sampling and demo training",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_discover_command(subparsers)
    add_train_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Warpdrive CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging()
        if args.command == "discover":
            return _run_discover_command(args)
        if args.command == "train":
            return run_train_command(args)
    except CancellationError as error:
        print(f"cancelled: {error}", file=sys.stderr)
        return 130
    except WarpdriveError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return 130
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _run_discover_command(args: argparse.Namespace) -> int:
    """Handle discover command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    roots = discover_by_root(args.roots)
    for root, shard_paths in roots.items():
        print(f"{root}\t{len(shard_paths)}")
        for shard_path in shard_paths:
            print(shard_path)
    return 0


def _add_discover_command(subparsers: Any) -> None:
    """Register discover subcommand."""
    parser = subparsers.add_parser("discover", help="List shard archives under dataset roots")
    parser.add_argument("roots", nargs="+", help="Dataset root directories")
