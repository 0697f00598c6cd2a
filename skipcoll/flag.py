"""Thread-safe bit flags used to mark skip-list nodes."""

from __future__ import annotations

import threading

FULLY_LINKED = 1 << 0
MARKED = 1 << 1


class BitFlag:
    """A small set of bit flags that can be changed safely from many threads."""

    __slots__ = ("_bits", "_lock")

    def __init__(self, bits: int = 0) -> None:
        self._bits = bits
        self._lock = threading.Lock()

    @property
    def bits(self) -> int:
        """The raw value of all flags."""
        return self._bits

    def set_true(self, flags: int) -> None:
        """Set every bit present in ``flags``."""
        with self._lock:
            self._bits |= flags

    def set_false(self, flags: int) -> None:
        """Clear every bit present in ``flags``."""
        with self._lock:
            self._bits &= ~flags

    def get(self, flag: int) -> bool:
        """Return True if any bit of ``flag`` is set."""
        return (self._bits & flag) != 0

    def mget(self, check: int, expect: int) -> bool:
        """Return True if the bits selected by ``check`` equal ``expect``."""
        return (self._bits & check) == expect

    def __repr__(self) -> str:
        return f"BitFlag({self._bits:#b})"