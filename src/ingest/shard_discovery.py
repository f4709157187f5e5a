"""Shard discovery under dataset roots.

This module walks dataset root directories and returns the shard archives
that follow the ``shard-NNNNNN.tar`` naming convention.
"""

from __future__ import annotations

import os
import re
import threading
from typing import Iterable

from core.constants import SHARD_NAME_PATTERN
from core.errors import CancellationError, DiscoveryError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)
_SHARD_NAME = re.compile(SHARD_NAME_PATTERN)


def discover_shards(root: str, stop_event: threading.Event | None = None) -> list[str]:
    """Return sorted absolute paths of shard archives beneath a root.

    An empty result is not an error here; callers decide whether a root
    without shards is acceptable.

    Args:
        root: Dataset root directory, walked recursively.
        stop_event: Optional cancellation signal polled per directory.

    Returns:
        Absolute shard paths in lexicographic order.

    Raises:
        DiscoveryError: If the root is missing or a directory is unreadable.
        CancellationError: If the stop event is set during the walk.
    """
    if not os.path.isdir(root):
        raise DiscoveryError(
            f"Failed to discover shards under {root}: not an existing directory. "
            "Provide an existing dataset root and retry."
        )
    shard_paths: list[str] = []
    for directory, _, file_names in os.walk(root, onerror=_raise_walk_error):
        if stop_event is not None and stop_event.is_set():
            raise CancellationError(f"Shard discovery under {root} was cancelled.")
        for file_name in file_names:
            if not _SHARD_NAME.match(file_name):
                continue
            file_path = os.path.join(directory, file_name)
            if os.path.isfile(file_path):
                shard_paths.append(os.path.abspath(file_path))
    return sorted(shard_paths)


def discover_by_root(
    roots: Iterable[str],
    stop_event: threading.Event | None = None,
) -> dict[str, list[str]]:
    """Discover shards for each root independently.

    Args:
        roots: Dataset root directories.
        stop_event: Optional cancellation signal.

    Returns:
        Mapping of root to its sorted shard paths.

    Raises:
        DiscoveryError: If any root cannot be walked.
    """
    result: dict[str, list[str]] = {}
    for root in roots:
        result[root] = discover_shards(root, stop_event)
        _LOGGER.info("shards_discovered", root=root, shard_count=len(result[root]))
    return result


def _raise_walk_error(error: OSError) -> None:
    """Turn an ``os.walk`` failure into a discovery error."""
    raise DiscoveryError(
        f"Failed to walk {error.filename}: {error.strerror or error}. "
        "Check that the directory exists and is readable."
    ) from error
