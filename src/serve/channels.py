"""Bounded queue handoff that honors a shared stop signal.

Every blocking send or receive between pipeline threads goes through
these helpers so a stop request is observed within one poll interval.
"""

from __future__ import annotations

import queue
import threading
from typing import TypeVar

from core.constants import CHANNEL_POLL_SECONDS

_Item = TypeVar("_Item")


def put_until_stopped(
    channel: queue.Queue[_Item],
    item: _Item,
    stop_event: threading.Event,
) -> bool:
    """Block until the item is queued or a stop is requested.

    Returns:
        True when the item was queued, False when the stop event was set first.
    """
    while not stop_event.is_set():
        try:
            channel.put(item, timeout=CHANNEL_POLL_SECONDS)
            return True
        except queue.Full:
            continue
    return False


def get_until_stopped(
    channel: queue.Queue[_Item],
    stop_event: threading.Event,
) -> _Item | None:
    """Block until an item arrives or a stop is requested.

    Pipeline channels never carry ``None``, so ``None`` means stopped.
    """
    while not stop_event.is_set():
        try:
            return channel.get(timeout=CHANNEL_POLL_SECONDS)
        except queue.Empty:
            continue
    return None
