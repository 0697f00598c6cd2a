"""A bounded multi-producer multi-consumer ring queue (scalable circular queue)."""

from __future__ import annotations

import threading
from queue import Empty
from typing import Any

SCQ_SIZE = 1 << 16
CACHE_LINE_SIZE = 64

_MASK62 = (1 << 62) - 1
_MASK63 = (1 << 63) - 1
_MASK64 = (1 << 64) - 1
_SAFE_BIT = 1 << 63
_EMPTY_BIT = 1 << 62
_CLOSED_BIT = 1 << 63
_FULL_THRESHOLD = 2 * SCQ_SIZE - 1

_SLOTS_PER_LINE = CACHE_LINE_SIZE // 2
_LINES = SCQ_SIZE // _SLOTS_PER_LINE


def load_scq_flags(flags: int) -> tuple[bool, bool, int]:
    """Split entry flags into ``(is_safe, is_empty, cycle)``."""
    return (
        (flags & _SAFE_BIT) == _SAFE_BIT,
        (flags & _EMPTY_BIT) == _EMPTY_BIT,
        flags & _MASK62,
    )


def new_scq_flags(is_safe: bool, is_empty: bool, cycle: int) -> int:
    """Pack a safe bit, an empty bit and a 62-bit cycle into entry flags."""
    value = cycle & _MASK62
    if is_safe:
        value += _SAFE_BIT
    if is_empty:
        value += _EMPTY_BIT
    return value


def cache_remap_16byte(index: int) -> int:
    """Map a ring position to a slot so that neighbouring positions use different cache lines."""
    raw = index & (SCQ_SIZE - 1)
    line_num = raw % _LINES
    line_idx = raw // _LINES
    return line_num * _SLOTS_PER_LINE + line_idx


class BoundedQueue:
    """Fixed-capacity FIFO queue of ``SCQ_SIZE`` items, safe to share between threads.

    ``enqueue`` reports False when the queue is full or closed; ``dequeue``
    raises :class:`queue.Empty` when there is nothing to take.
    """

    def __init__(self) -> None:
        self._flags = [new_scq_flags(True, True, 0)] * SCQ_SIZE
        self._data: list[Any] = [None] * SCQ_SIZE
        self._head = SCQ_SIZE
        self._tail = SCQ_SIZE  # closed bit + 63-bit tail
        self._threshold = -1
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        """True once :meth:`close` has been called."""
        return (self._tail & _CLOSED_BIT) == _CLOSED_BIT

    def enqueue(self, item: Any) -> bool:
        """Append ``item``; return False if the queue is full or closed."""
        with self._lock:
            while True:
                tail_value = self._tail
                self._tail = (tail_value + 1) & _MASK64
                if tail_value & _CLOSED_BIT:
                    return False
                t = tail_value & _MASK63
                slot = cache_remap_16byte(t)
                cycle_t = t // SCQ_SIZE
                is_safe, is_empty, cycle = load_scq_flags(self._flags[slot])
                if cycle < cycle_t and is_empty and (is_safe or self._head <= t):
                    self._flags[slot] = new_scq_flags(True, False, cycle_t)
                    self._data[slot] = item
                    self._threshold = _FULL_THRESHOLD
                    return True
                if t + 1 >= self._head + SCQ_SIZE:
                    return False

    def dequeue(self) -> Any:
        """Remove and return the oldest item; raise :class:`queue.Empty` if there is none."""
        with self._lock:
            if self._threshold < 0:
                raise Empty
            while True:
                h = self._head
                self._head = h + 1
                slot = cache_remap_16byte(h)
                cycle_h = h // SCQ_SIZE
                flags = self._flags[slot]
                is_safe, is_empty, cycle = load_scq_flags(flags)
                if cycle == cycle_h:
                    item = self._data[slot]
                    self._data[slot] = None
                    self._flags[slot] = flags | _EMPTY_BIT
                    return item
                if cycle < cycle_h:
                    if is_empty:
                        self._flags[slot] = new_scq_flags(is_safe, True, cycle_h)
                    else:
                        self._flags[slot] = new_scq_flags(False, False, cycle)
                t = self._tail & _MASK63
                if t <= h + 1:
                    self._fix_state(h + 1)
                    self._threshold -= 1
                    raise Empty
                self._threshold -= 1
                if self._threshold + 1 <= 0:
                    raise Empty

    def close(self) -> None:
        """Refuse all further enqueues; items already queued can still be taken."""
        with self._lock:
            self._tail |= _CLOSED_BIT

    def _rearm(self) -> None:
        """Allow a full scan for remaining items on the next dequeue."""
        with self._lock:
            self._threshold = _FULL_THRESHOLD

    def _fix_state(self, original_head: int) -> None:
        head = self._head
        if original_head < head:
            return
        if self._tail >= head:
            return
        self._tail = head