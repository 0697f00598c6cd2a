"""A concurrent ordered set built on a lazily synchronised skip list."""

from __future__ import annotations

import threading
import time
from typing import Any, Iterator

from skipcoll.flag import FULLY_LINKED, MARKED, BitFlag
from skipcoll.levels import DEFAULT_HIGHEST_LEVEL, MAX_LEVEL, LinkArray, random_level

_LIVE = FULLY_LINKED | MARKED


class _Node:
    __slots__ = ("value", "level", "next", "lock", "flags")

    def __init__(self, value: Any, level: int) -> None:
        self.value = value
        self.level = level
        self.next = LinkArray(level)
        self.lock = threading.Lock()
        self.flags = BitFlag()


def _unlock(preds: list[_Node | None], highest_locked: int) -> None:
    prev = None
    for layer in range(highest_locked, -1, -1):
        pred = preds[layer]
        if pred is not prev:
            pred.lock.release()
            prev = pred


class SkipSet:
    """Thread-safe set keeping its values in ascending order."""

    def __init__(self) -> None:
        self._header = _Node(None, MAX_LEVEL)
        self._header.flags.set_true(FULLY_LINKED)
        self._length = 0
        self._highest_level = DEFAULT_HIGHEST_LEVEL
        self._meta_lock = threading.Lock()

    def _random_level(self) -> int:
        level = random_level()
        with self._meta_lock:
            if level > self._highest_level:
                self._highest_level = level
        return level

    def _adjust_length(self, delta: int) -> None:
        with self._meta_lock:
            self._length += delta

    def _search(self, value: Any, *, stop_on_match: bool):
        """Return (preds, succs, first layer where ``value`` was found or -1)."""
        preds: list[_Node | None] = [None] * MAX_LEVEL
        succs: list[_Node | None] = [None] * MAX_LEVEL
        found = -1
        x = self._header
        for layer in reversed(range(self._highest_level)):
            succ = x.next[layer]
            while succ is not None and succ.value < value:
                x = succ
                succ = x.next[layer]
            preds[layer] = x
            succs[layer] = succ
            if found == -1 and succ is not None and succ.value == value:
                found = layer
                if stop_on_match:
                    break
        return preds, succs, found

    def add(self, value: Any) -> bool:
        """Insert ``value``; return False if it was already present."""
        level = self._random_level()
        while True:
            preds, succs, found = self._search(value, stop_on_match=True)
            if found != -1:
                existing = succs[found]
                if not existing.flags.get(MARKED):
                    while not existing.flags.get(FULLY_LINKED):
                        time.sleep(0)
                    return False
                # Being removed by someone else; try again.
                continue

            highest_locked = -1
            valid = True
            prev = None
            for layer in range(level):
                pred, succ = preds[layer], succs[layer]
                if pred is not prev:
                    pred.lock.acquire()
                    highest_locked = layer
                    prev = pred
                valid = (
                    not pred.flags.get(MARKED)
                    and (succ is None or not succ.flags.get(MARKED))
                    and pred.next[layer] is succ
                )
                if not valid:
                    break
            if not valid:
                _unlock(preds, highest_locked)
                continue

            node = _Node(value, level)
            for layer in range(level):
                node.next[layer] = succs[layer]
                preds[layer].next[layer] = node
            node.flags.set_true(FULLY_LINKED)
            _unlock(preds, highest_locked)
            self._adjust_length(1)
            return True

    def contains(self, value: Any) -> bool:
        """Return True if ``value`` is in the set."""
        x = self._header
        for layer in reversed(range(self._highest_level)):
            nex = x.next[layer]
            while nex is not None and nex.value < value:
                x = nex
                nex = x.next[layer]
            if nex is not None and nex.value == value:
                return nex.flags.mget(_LIVE, FULLY_LINKED)
        return False

    def remove(self, value: Any) -> bool:
        """Remove ``value``; return False if it was not present."""
        target: _Node | None = None
        top_layer = -1
        while True:
            preds, succs, found = self._search(value, stop_on_match=False)
            if target is None:
                if found == -1:
                    return False
                candidate = succs[found]
                if not (
                    candidate.flags.mget(_LIVE, FULLY_LINKED)
                    and candidate.level - 1 == found
                ):
                    return False
                candidate.lock.acquire()
                if candidate.flags.get(MARKED):
                    # Another thread owns the deletion.
                    candidate.lock.release()
                    return False
                candidate.flags.set_true(MARKED)
                target = candidate
                top_layer = found

            highest_locked = -1
            valid = True
            prev = None
            for layer in range(top_layer + 1):
                pred, succ = preds[layer], succs[layer]
                if pred is not prev:
                    pred.lock.acquire()
                    highest_locked = layer
                    prev = pred
                valid = not pred.flags.get(MARKED) and pred.next[layer] is succ
                if not valid:
                    break
            if not valid:
                _unlock(preds, highest_locked)
                continue

            for layer in range(top_layer, -1, -1):
                preds[layer].next[layer] = target.next[layer]
            target.lock.release()
            _unlock(preds, highest_locked)
            self._adjust_length(-1)
            return True

    def __contains__(self, value: Any) -> bool:
        return self.contains(value)

    def __iter__(self) -> Iterator[Any]:
        x = self._header.next[0]
        while x is not None:
            if x.flags.mget(_LIVE, FULLY_LINKED):
                yield x.value
            x = x.next[0]

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        return f"SkipSet({list(self)!r})"