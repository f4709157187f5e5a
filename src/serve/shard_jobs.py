"""Round-robin shard job production.

This module turns a root-to-shards mapping into an endless, seeded
sequence of shard jobs. Each cycle shuffles every root's shards and then
interleaves roots in sorted name order, so no root starves another.
"""

from __future__ import annotations

import random
import threading
from typing import Iterator, Mapping, Sequence

from core.constants import EMPTY_ROOTS_RETRY_SECONDS, FIRST_SEQUENCE_ID
from core.types import ShardJob


def build_round_robin_order(
    roots: Mapping[str, Sequence[str]],
    randomizer: random.Random,
) -> list[tuple[str, str]]:
    """Build one cycle of ``(root, shard_path)`` assignments.

    Roots are shuffled and visited in ascending name order so the result
    depends only on the randomizer state and the sorted inputs.

    Args:
        roots: Mapping of root to its shard paths. Not modified.
        randomizer: Seeded generator used for the per-root shuffles.

    Returns:
        Interleaved assignments, empty when every root has no shards.
    """
    root_names = sorted(root for root, shards in roots.items() if shards)
    shuffled: dict[str, list[str]] = {}
    for root in root_names:
        shard_paths = list(roots[root])
        randomizer.shuffle(shard_paths)
        shuffled[root] = shard_paths
    cycle_length = max((len(paths) for paths in shuffled.values()), default=0)
    order: list[tuple[str, str]] = []
    for position in range(cycle_length):
        for root in root_names:
            if position < len(shuffled[root]):
                order.append((root, shuffled[root][position]))
    return order


def iter_shard_jobs(
    roots: Mapping[str, Sequence[str]],
    seed: int,
    stop_event: threading.Event,
) -> Iterator[ShardJob]:
    """Yield shard jobs forever, cycling over every root.

    The randomizer is created here and never leaves this generator, so the
    producing thread owns all shuffle state.

    Args:
        roots: Mapping of root to its sorted shard paths.
        seed: Seed for the per-cycle shuffles.
        stop_event: Stops production before the next job is issued.

    Yields:
        Jobs with strictly increasing sequence ids.
    """
    randomizer = random.Random(seed)
    sequence_id = FIRST_SEQUENCE_ID
    while not stop_event.is_set():
        order = build_round_robin_order(roots, randomizer)
        if not order:
            stop_event.wait(EMPTY_ROOTS_RETRY_SECONDS)
            continue
        for root, shard_path in order:
            if stop_event.is_set():
                return
            yield ShardJob(sequence_id=sequence_id, root=root, path=shard_path)
            sequence_id += 1
