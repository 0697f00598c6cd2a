"""An unbounded FIFO queue made of a linked chain of bounded ring queues."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from queue import Empty
from typing import Any, Optional

from skipcoll.ring import BoundedQueue


@dataclass(eq=False)
class _Segment:
    ring: BoundedQueue = field(default_factory=BoundedQueue)
    next: Optional[_Segment] = None
    lock: threading.Lock = field(default_factory=threading.Lock)


class UnboundedQueue:
    """Thread-safe FIFO queue without a capacity limit.

    Items go into a bounded ring; when it fills up it is closed and a new
    ring is linked after it. ``dequeue`` raises :class:`queue.Empty` when
    there is nothing to take.
    """

    def __init__(self) -> None:
        segment = _Segment()
        self._head = segment
        self._tail = segment
        self._ends_lock = threading.Lock()

    def _advance_head(self, current: _Segment, nxt: _Segment) -> None:
        with self._ends_lock:
            if self._head is current:
                self._head = nxt

    def _advance_tail(self, current: _Segment, nxt: _Segment) -> None:
        with self._ends_lock:
            if self._tail is current:
                self._tail = nxt

    def enqueue(self, item: Any) -> None:
        """Append ``item`` to the queue."""
        while True:
            segment = self._tail
            nxt = segment.next
            if nxt is not None:
                self._advance_tail(segment, nxt)
                continue
            if segment.ring.enqueue(item):
                return
            segment.ring.close()
            with segment.lock:
                if segment.next is not None:
                    continue
                fresh = _Segment()
                fresh.ring.enqueue(item)
                segment.next = fresh
                self._advance_tail(segment, fresh)
                return

    def dequeue(self) -> Any:
        """Remove and return the oldest item; raise :class:`queue.Empty` if there is none."""
        while True:
            segment = self._head
            try:
                return segment.ring.dequeue()
            except Empty:
                pass
            nxt = segment.next
            if nxt is None:
                raise Empty
            # Nothing more will be added to this segment; scan it fully once more.
            segment.ring._rearm()
            try:
                return segment.ring.dequeue()
            except Empty:
                pass
            self._advance_head(segment, nxt)