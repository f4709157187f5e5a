"""Multi-root shard sampling pipeline.

This module wires the job producer, a pool of shard workers, and an
ordered aggregator into one deterministic sample stream.

Workers stream shards concurrently and may finish out of order. The
aggregator buffers their cursors by sequence id and forwards samples in
exactly the order jobs were issued, so a fixed seed and fixed shard
listings always reproduce the same stream. All handoff uses bounded
queues, which gives backpressure from the consumer back to the producer.
The first fatal shard error stops the whole pipeline.
"""

from __future__ import annotations

import queue
import threading
import time
from contextlib import closing
from dataclasses import dataclass
from typing import Callable, Iterator, Mapping, cast

from core.constants import (
    CHANNEL_POLL_SECONDS,
    DEFAULT_PENDING_CAP,
    DEFAULT_SEED,
    DEFAULT_WORKER_COUNT,
    FIRST_SEQUENCE_ID,
    OUTPUT_CHANNEL_FACTOR,
    SAMPLER_JOIN_TIMEOUT_SECONDS,
    SHARD_CHANNEL_FACTOR,
)
from core.errors import CancellationError, WarpdriveError, WarpdriveSamplerError
from core.logging_config import get_logger
from core.types import Sample, SamplerOptions, ShardJob
from ingest.shard_reader import stream_shard
from serve.channels import get_until_stopped, put_until_stopped
from serve.shard_jobs import iter_shard_jobs

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ShardStatus:
    """Terminal status of one shard job; ``error`` is None on success."""

    error: WarpdriveError | None = None


CursorItem = Sample | ShardStatus


@dataclass(frozen=True)
class ShardCursor:
    """Handle to one job's in-flight output.

    The ``samples`` queue carries the shard's samples in archive order and
    ends with exactly one ``ShardStatus``.
    """

    job: ShardJob
    samples: queue.Queue[CursorItem]

    @property
    def sequence_id(self) -> int:
        return self.job.sequence_id


@dataclass(frozen=True)
class _ResolvedOptions:
    roots: Mapping[str, tuple[str, ...]]
    seed: int
    worker_count: int
    pending_cap: int


class ShardSampler:
    """Ordered, concurrent sample stream over several dataset roots.

    Use ``start_sampler`` to build and start one. Iterate the sampler to
    receive samples; iteration raises the first fatal shard error and ends
    quietly after ``stop``.
    """

    def __init__(
        self,
        options: SamplerOptions,
        parent_stop_event: threading.Event | None = None,
    ) -> None:
        self._options = _resolve_options(options)
        self._parent_stop_event = parent_stop_event
        worker_count = self._options.worker_count
        self._stop_event = threading.Event()
        self._stop_requested = threading.Event()
        self._finished = threading.Event()
        self._jobs: queue.Queue[ShardJob] = queue.Queue(maxsize=worker_count)
        self._cursors: queue.Queue[ShardCursor] = queue.Queue(maxsize=worker_count)
        self._output: queue.Queue[Sample] = queue.Queue(
            maxsize=worker_count * OUTPUT_CHANNEL_FACTOR
        )
        self._error: WarpdriveError | None = None
        self._threads: list[threading.Thread] = []

    @property
    def error(self) -> WarpdriveError | None:
        """First fatal shard error, if the pipeline failed."""
        return self._error

    @property
    def worker_count(self) -> int:
        return self._options.worker_count

    def start(self) -> "ShardSampler":
        """Launch producer, worker, aggregator and parent-stop watcher threads."""
        if self._threads:
            raise WarpdriveSamplerError("Sampler was already started. Create a new sampler.")
        self._spawn("shard-producer", self._produce_jobs)
        for worker_index in range(self._options.worker_count):
            self._spawn(f"shard-worker-{worker_index}", self._run_worker)
        self._spawn("shard-aggregator", self._aggregate)
        if self._parent_stop_event is not None:
            self._spawn("shard-stop-watcher", self._watch_parent_stop)
        _LOGGER.info(
            "sampler_started",
            roots=sorted(self._options.roots),
            shard_counts={root: len(paths) for root, paths in self._options.roots.items()},
            worker_count=self._options.worker_count,
            pending_cap=self._options.pending_cap,
            seed=self._options.seed,
        )
        return self

    def stop(self, timeout: float = SAMPLER_JOIN_TIMEOUT_SECONDS) -> None:
        """Request shutdown and wait for every pipeline thread to exit.

        Args:
            timeout: Total seconds to wait for threads to join.
        """
        already_stopped = self._stop_requested.is_set()
        self._stop_requested.set()
        self._stop_event.set()
        deadline = time.monotonic() + timeout
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        if already_stopped:
            return
        alive = [thread.name for thread in self._threads if thread.is_alive()]
        if alive:
            _LOGGER.warning("sampler_threads_still_running", threads=alive)
        reason = "failed" if self._error is not None else "cancelled"
        _LOGGER.info("sampler_stopped", reason=reason)

    def __iter__(self) -> Iterator[Sample]:
        """Yield samples in job issuance order.

        Iteration ends without error after ``stop`` or once the parent
        stop event is set; the latter also signals every pipeline thread.

        Raises:
            WarpdriveError: The first fatal shard error, after every sample
                that preceded it has been yielded.
        """
        while not self._stop_requested.is_set():
            if self._parent_stop_event is not None and self._parent_stop_event.is_set():
                self._stop_event.set()
                return
            try:
                sample = self._output.get(timeout=CHANNEL_POLL_SECONDS)
            except queue.Empty:
                if self._finished.is_set() and self._output.empty():
                    if self._error is not None:
                        raise self._error
                    return
                continue
            yield sample

    def __enter__(self) -> "ShardSampler":
        return self

    def __exit__(self, *_: object) -> None:
        self.stop()

    def _spawn(self, name: str, target: Callable[[], None]) -> None:
        thread = threading.Thread(target=target, name=name, daemon=True)
        thread.start()
        self._threads.append(thread)

    def _watch_parent_stop(self) -> None:
        """Forward a caller stop to every pipeline thread."""
        parent_stop_event = cast(threading.Event, self._parent_stop_event)
        while not self._stop_event.wait(CHANNEL_POLL_SECONDS):
            if parent_stop_event.is_set():
                self._stop_event.set()
                return

    def _produce_jobs(self) -> None:
        for job in iter_shard_jobs(self._options.roots, self._options.seed, self._stop_event):
            if not put_until_stopped(self._jobs, job, self._stop_event):
                return

    def _run_worker(self) -> None:
        while True:
            job = get_until_stopped(self._jobs, self._stop_event)
            if job is None:
                return
            cursor = ShardCursor(
                job=job,
                samples=queue.Queue(maxsize=self._options.worker_count * SHARD_CHANNEL_FACTOR),
            )
            if not put_until_stopped(self._cursors, cursor, self._stop_event):
                return
            status = self._stream_job(cursor)
            if status is None or not put_until_stopped(cursor.samples, status, self._stop_event):
                return

    def _stream_job(self, cursor: ShardCursor) -> ShardStatus | None:
        """Stream one shard into its cursor; None means abandoned on stop."""
        job = cursor.job
        try:
            with closing(
                stream_shard(job.path, self._options.pending_cap, self._stop_event)
            ) as samples:
                for sample in samples:
                    if not put_until_stopped(cursor.samples, sample, self._stop_event):
                        return None
        except WarpdriveError as error:
            return ShardStatus(error=error)
        except Exception as error:
            wrapped = WarpdriveSamplerError(
                f"Unexpected failure while streaming shard {job.path}: {error}."
            )
            wrapped.__cause__ = error
            return ShardStatus(error=wrapped)
        _LOGGER.debug("shard_completed", sequence_id=job.sequence_id, shard_path=job.path)
        return ShardStatus()

    def _aggregate(self) -> None:
        pending: dict[int, ShardCursor] = {}
        next_id = FIRST_SEQUENCE_ID
        try:
            while not self._stop_event.is_set():
                cursor = pending.pop(next_id, None)
                if cursor is None:
                    received = get_until_stopped(self._cursors, self._stop_event)
                    if received is None:
                        return
                    pending[received.sequence_id] = received
                    continue
                status = self._drain_cursor(cursor)
                if status is None:
                    return
                if status.error is not None and not isinstance(status.error, CancellationError):
                    self._fail(cursor.job, status.error)
                    return
                next_id += 1
        finally:
            self._finished.set()
            self._stop_event.set()

    def _drain_cursor(self, cursor: ShardCursor) -> ShardStatus | None:
        """Forward one cursor's samples; return its status, or None on stop."""
        while True:
            item = get_until_stopped(cursor.samples, self._stop_event)
            if item is None:
                return None
            if isinstance(item, ShardStatus):
                return item
            if not put_until_stopped(self._output, item, self._stop_event):
                return None

    def _fail(self, job: ShardJob, error: WarpdriveError) -> None:
        self._error = error
        _LOGGER.error(
            "shard_failed",
            sequence_id=job.sequence_id,
            root=job.root,
            shard_path=job.path,
            error_type=type(error).__name__,
            error=str(error),
        )


def start_sampler(
    options: SamplerOptions,
    parent_stop_event: threading.Event | None = None,
) -> ShardSampler:
    """Validate options and start a sampler pipeline.

    Args:
        options: Roots, seed, worker count, and pending cap.
        parent_stop_event: Optional caller-owned stop signal. Pipeline
            failures never set it.

    Returns:
        Running sampler; stop it (or use it as a context manager) when done.

    Raises:
        WarpdriveSamplerError: If no roots are given, every root is empty,
            or an option is out of range.
    """
    return ShardSampler(options, parent_stop_event).start()


def _resolve_options(options: SamplerOptions) -> _ResolvedOptions:
    """Validate sampler options once and fill defaults."""
    if not options.roots:
        raise WarpdriveSamplerError(
            "No dataset roots provided. Pass at least one root with discovered shards."
        )
    roots = {root: tuple(paths) for root, paths in options.roots.items()}
    if sum(len(paths) for paths in roots.values()) == 0:
        raise WarpdriveSamplerError(
            "No shards discovered under any dataset root. "
            "Check that roots contain files named like shard-000000.tar."
        )
    worker_count = DEFAULT_WORKER_COUNT if options.worker_count is None else options.worker_count
    pending_cap = DEFAULT_PENDING_CAP if options.pending_cap is None else options.pending_cap
    for name, value in (("worker_count", worker_count), ("pending_cap", pending_cap)):
        if value <= 0:
            raise WarpdriveSamplerError(f"Invalid {name}: expected a value > 0, got {value}.")
    seed = DEFAULT_SEED if options.seed is None else options.seed
    return _ResolvedOptions(
        roots=roots, seed=seed, worker_count=worker_count, pending_cap=pending_cap
    )
