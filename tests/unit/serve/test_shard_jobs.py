"""Unit tests for round-robin shard job production."""

from __future__ import annotations

import itertools
import random
import threading
import time

from serve.shard_jobs import build_round_robin_order, iter_shard_jobs


def test_build_round_robin_order_alternates_roots() -> None:
    """Roots should take turns in sorted name order."""
    roots = {"B": ["b0"], "A": ["a0", "a1"]}

    order = build_round_robin_order(roots, random.Random(1))

    assert [root for root, _ in order] == ["A", "B", "A"]
    assert sorted(path for _, path in order) == ["a0", "a1", "b0"]


def test_build_round_robin_order_does_not_mutate_inputs() -> None:
    """Shuffling should work on copies of the shard lists."""
    shards = ["s0", "s1", "s2", "s3"]
    roots = {"A": shards}

    build_round_robin_order(roots, random.Random(3))

    assert shards == ["s0", "s1", "s2", "s3"]


def test_build_round_robin_order_skips_empty_roots() -> None:
    """Empty roots should not appear in the cycle."""
    order = build_round_robin_order({"A": [], "B": ["b0"]}, random.Random(0))

    assert order == [("B", "b0")]


def test_iter_shard_jobs_is_deterministic_for_a_seed() -> None:
    """Equal seeds should produce identical job sequences."""
    roots = {"A": [f"a{index}" for index in range(5)], "B": [f"b{index}" for index in range(3)]}

    first = list(itertools.islice(iter_shard_jobs(roots, 7, threading.Event()), 24))
    second = list(itertools.islice(iter_shard_jobs(roots, 7, threading.Event()), 24))

    assert first == second
    assert [job.sequence_id for job in first] == list(range(24))


def test_iter_shard_jobs_is_fair_between_roots() -> None:
    """Over several cycles each root should receive jobs proportional to its shards."""
    roots = {"A": ["a0", "a1"], "B": ["b0", "b1"]}

    jobs = list(itertools.islice(iter_shard_jobs(roots, 11, threading.Event()), 40))
    counts = {root: sum(1 for job in jobs if job.root == root) for root in roots}

    assert counts == {"A": 20, "B": 20}
    assert all(jobs[index].root != jobs[index + 1].root for index in range(39))


def test_iter_shard_jobs_waits_on_empty_roots_until_stopped() -> None:
    """With no shards anywhere the producer should idle and exit on stop."""
    stop_event = threading.Event()
    produced: list[object] = []

    def _consume() -> None:
        produced.extend(iter_shard_jobs({"A": []}, 1, stop_event))

    thread = threading.Thread(target=_consume, daemon=True)
    thread.start()
    time.sleep(0.1)
    stop_event.set()
    thread.join(timeout=2.0)

    assert not thread.is_alive() and produced == []


def test_iter_shard_jobs_stops_before_next_job() -> None:
    """Setting the stop event should end the job stream."""
    stop_event = threading.Event()
    jobs = iter_shard_jobs({"A": ["a0", "a1", "a2"]}, 2, stop_event)

    next(jobs)
    stop_event.set()

    assert list(jobs) == []
