"""Paired-sample streaming from shard archives.

This module reads one uncompressed tar shard in stored entry order and
pairs image and ``.cls`` label entries that share a base filename. Pairs
are emitted as soon as both halves are seen, so memory is bounded by the
number of incomplete pairs rather than the shard size.
"""

from __future__ import annotations

import posixpath
import re
import tarfile
import threading
from dataclasses import dataclass
from typing import Iterator, cast

from core.constants import DEFAULT_PENDING_CAP, IMAGE_EXTENSIONS, LABEL_EXTENSION
from core.errors import (
    CancellationError,
    IncompletePairsError,
    LabelFormatError,
    PendingOverflowError,
    ShardOpenError,
    ShardReadError,
    WarpdriveConfigError,
)
from core.types import Sample

_LABEL_TEXT = re.compile(r"[+-]?[0-9]+")
_ASCII_WHITESPACE = " \t\n\r\v\f"
_LABEL_MIN = -(2**63)
_LABEL_MAX = 2**63 - 1


@dataclass
class _PendingPair:
    """Whichever half of a pair has arrived so far.

    An empty image payload never completes a pair.
    """

    image: bytes | None = None
    label: int | None = None

    def is_complete(self) -> bool:
        return bool(self.image) and self.label is not None


def stream_shard(
    shard_path: str,
    pending_cap: int = DEFAULT_PENDING_CAP,
    stop_event: threading.Event | None = None,
) -> Iterator[Sample]:
    """Yield paired samples from one shard in archive order.

    The archive is opened on first iteration and closed on every exit
    path, including cancellation and closing the generator early.

    Args:
        shard_path: Shard archive path.
        pending_cap: Maximum number of incomplete pairs held at once.
        stop_event: Optional cancellation signal, polled before each entry
            read and before each emission.

    Yields:
        Samples whose image and label have both been read.

    Raises:
        ShardOpenError: If the archive cannot be opened.
        ShardReadError: If the archive is corrupt mid-stream.
        LabelFormatError: If a label payload is not a decimal integer.
        PendingOverflowError: If incomplete pairs would exceed ``pending_cap``.
        IncompletePairsError: If the shard ends with unmatched entries.
        CancellationError: If the stop event is set.
    """
    if pending_cap <= 0:
        raise WarpdriveConfigError(
            f"Invalid pending_cap: expected a value > 0, got {pending_cap}."
        )
    with _open_archive(shard_path) as archive:
        pending: dict[str, _PendingPair] = {}
        while True:
            _raise_if_cancelled(stop_event, shard_path)
            member = _next_member(archive, shard_path)
            if member is None:
                break
            if not member.isfile():
                continue
            key, extension = _split_entry_name(member.name)
            if extension in IMAGE_EXTENSIONS:
                image = _read_payload(archive, member, shard_path)
                pair = _pending_pair(pending, key, pending_cap, shard_path)
                pair.image = image
            elif extension == LABEL_EXTENSION:
                payload = _read_payload(archive, member, shard_path)
                label = _parse_label(payload, member.name, shard_path)
                pair = _pending_pair(pending, key, pending_cap, shard_path)
                pair.label = label
            else:
                continue
            if pair.is_complete():
                _raise_if_cancelled(stop_event, shard_path)
                del pending[key]
                yield Sample(key=key, image=cast(bytes, pair.image), label=cast(int, pair.label))
        if pending:
            raise IncompletePairsError(
                f"Shard {shard_path} ended with {len(pending)} incomplete pair(s). "
                "Every image needs a matching .cls entry and vice versa.",
                shard_path,
                incomplete_count=len(pending),
            )


def _open_archive(shard_path: str) -> tarfile.TarFile:
    """Open a shard as an uncompressed tar stream."""
    try:
        return tarfile.open(shard_path, mode="r:")
    except (OSError, tarfile.TarError) as error:
        raise ShardOpenError(
            f"Failed to open shard {shard_path}: {error}. "
            "Check that the file exists and is an uncompressed tar archive.",
            shard_path,
        ) from error


def _next_member(archive: tarfile.TarFile, shard_path: str) -> tarfile.TarInfo | None:
    try:
        return archive.next()
    except (OSError, tarfile.TarError) as error:
        raise ShardReadError(
            f"Failed to read tar entry in {shard_path}: {error}.", shard_path
        ) from error


def _read_payload(archive: tarfile.TarFile, member: tarfile.TarInfo, shard_path: str) -> bytes:
    try:
        handle = archive.extractfile(member)
        if handle is None:
            raise ShardReadError(f"Entry {member.name} in {shard_path} has no payload.", shard_path)
        with handle:
            return handle.read()
    except (OSError, tarfile.TarError) as error:
        raise ShardReadError(
            f"Failed to read entry {member.name} in {shard_path}: {error}.", shard_path
        ) from error


def _raise_if_cancelled(stop_event: threading.Event | None, shard_path: str) -> None:
    if stop_event is not None and stop_event.is_set():
        raise CancellationError(f"Streaming shard {shard_path} was cancelled.")


def _split_entry_name(entry_name: str) -> tuple[str, str]:
    """Return the pairing key and lowercase extension of an entry."""
    base_name = posixpath.basename(entry_name)
    stem, extension = posixpath.splitext(base_name)
    return stem, extension.lower()


def _pending_pair(
    pending: dict[str, _PendingPair],
    key: str,
    pending_cap: int,
    shard_path: str,
) -> _PendingPair:
    pair = pending.get(key)
    if pair is not None:
        return pair
    if len(pending) >= pending_cap:
        raise PendingOverflowError(
            f"Shard {shard_path} holds more than {pending_cap} incomplete pairs. "
            "Image and label entries must be stored close together.",
            shard_path,
        )
    pair = _PendingPair()
    pending[key] = pair
    return pair


def _parse_label(payload: bytes, entry_name: str, shard_path: str) -> int:
    try:
        text = payload.decode("utf-8").strip(_ASCII_WHITESPACE)
    except UnicodeDecodeError as error:
        raise LabelFormatError(
            f"Label entry {entry_name} in {shard_path} is not UTF-8 text.", shard_path
        ) from error
    if not _LABEL_TEXT.fullmatch(text):
        raise LabelFormatError(
            f"Label entry {entry_name} in {shard_path} is not a decimal integer: '{text}'.",
            shard_path,
        )
    label = int(text)
    if not _LABEL_MIN <= label <= _LABEL_MAX:
        raise LabelFormatError(
            f"Label entry {entry_name} in {shard_path} is outside the 64-bit range: '{text}'.",
            shard_path,
        )
    return label
