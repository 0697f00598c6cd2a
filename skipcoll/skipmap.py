"""A concurrent ordered map built on a lazily synchronised skip list."""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterator

from skipcoll.flag import FULLY_LINKED, MARKED, BitFlag
from skipcoll.levels import DEFAULT_HIGHEST_LEVEL, MAX_LEVEL, LinkArray, random_level

_LIVE = FULLY_LINKED | MARKED


class _Node:
    __slots__ = ("key", "value", "level", "next", "lock", "flags")

    def __init__(self, key: Any, value: Any, level: int) -> None:
        self.key = key
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


class SkipMap:
    """Thread-safe mapping keeping its keys in ascending order."""

    def __init__(self) -> None:
        self._header = _Node(None, None, MAX_LEVEL)
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

    def _find(self, key: Any):
        """Return (preds, succs, node) stopping at the first layer holding ``key``."""
        preds: list[_Node | None] = [None] * MAX_LEVEL
        succs: list[_Node | None] = [None] * MAX_LEVEL
        x = self._header
        for layer in reversed(range(self._highest_level)):
            succ = x.next[layer]
            while succ is not None and succ.key < key:
                x = succ
                succ = x.next[layer]
            preds[layer] = x
            succs[layer] = succ
            if succ is not None and succ.key == key:
                return preds, succs, succ
        return preds, succs, None

    def _find_for_delete(self, key: Any):
        """Return (preds, succs, first layer where ``key`` was found or -1)."""
        preds: list[_Node | None] = [None] * MAX_LEVEL
        succs: list[_Node | None] = [None] * MAX_LEVEL
        found = -1
        x = self._header
        for layer in reversed(range(self._highest_level)):
            succ = x.next[layer]
            while succ is not None and succ.key < key:
                x = succ
                succ = x.next[layer]
            preds[layer] = x
            succs[layer] = succ
            if found == -1 and succ is not None and succ.key == key:
                found = layer
        return preds, succs, found

    def _try_link(
        self,
        key: Any,
        level: int,
        preds: list[_Node | None],
        succs: list[_Node | None],
        make_value: Callable[[], Any],
    ) -> _Node | None:
        """Lock the predecessors and link a new node; None if the search went stale."""
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
            return None
        try:
            node = _Node(key, make_value(), level)
            for layer in range(level):
                node.next[layer] = succs[layer]
                preds[layer].next[layer] = node
            node.flags.set_true(FULLY_LINKED)
        finally:
            _unlock(preds, highest_locked)
        self._adjust_length(1)
        return node

    def store(self, key: Any, value: Any) -> None:
        """Set the value for ``key``."""
        level = self._random_level()
        while True:
            preds, succs, found = self._find(key)
            if found is not None:
                if not found.flags.get(MARKED):
                    found.value = value
                    return
                # Being deleted by someone else; insert anew on the next pass.
                continue
            if self._try_link(key, level, preds, succs, lambda: value) is not None:
                return

    def load(self, key: Any) -> tuple[Any, bool]:
        """Return ``(value, True)`` if ``key`` is present, else ``(None, False)``."""
        x = self._header
        for layer in reversed(range(self._highest_level)):
            nex = x.next[layer]
            while nex is not None and nex.key < key:
                x = nex
                nex = x.next[layer]
            if nex is not None and nex.key == key:
                if nex.flags.mget(_LIVE, FULLY_LINKED):
                    return nex.value, True
                return None, False
        return None, False

    def _load_or_insert(self, key: Any, make_value: Callable[[], Any]) -> tuple[Any, bool]:
        level = 0
        snapshot = self._highest_level
        while True:
            preds, succs, found = self._find(key)
            if found is not None:
                if not found.flags.get(MARKED):
                    return found.value, True
                continue
            if level == 0:
                level = self._random_level()
                if level > snapshot:
                    # The search did not cover the new top levels; search again.
                    continue
            node = self._try_link(key, level, preds, succs, make_value)
            if node is not None:
                return node.value, False

    def load_or_store(self, key: Any, value: Any) -> tuple[Any, bool]:
        """Return ``(existing, True)`` if present, else store ``value`` and return ``(value, False)``."""
        return self._load_or_insert(key, lambda: value)

    def load_or_store_lazy(self, key: Any, factory: Callable[[], Any]) -> tuple[Any, bool]:
        """Like :meth:`load_or_store`, calling ``factory`` at most once to make the value."""
        return self._load_or_insert(key, factory)

    def _delete(self, key: Any) -> tuple[Any, bool]:
        target: _Node | None = None
        top_layer = -1
        while True:
            preds, succs, found = self._find_for_delete(key)
            if target is None:
                if found == -1:
                    return None, False
                candidate = succs[found]
                if not (
                    candidate.flags.mget(_LIVE, FULLY_LINKED)
                    and candidate.level - 1 == found
                ):
                    return None, False
                candidate.lock.acquire()
                if candidate.flags.get(MARKED):
                    # Another thread owns the deletion.
                    candidate.lock.release()
                    return None, False
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
            return target.value, True

    def load_and_delete(self, key: Any) -> tuple[Any, bool]:
        """Remove ``key`` and return ``(old value, True)``, or ``(None, False)`` if absent."""
        return self._delete(key)

    def delete(self, key: Any) -> bool:
        """Remove ``key``; return False if it was not present."""
        return self._delete(key)[1]

    def items(self) -> Iterator[tuple[Any, Any]]:
        """Yield ``(key, value)`` pairs in ascending key order.

        The walk is not a snapshot: entries changed concurrently may or may
        not be seen, but no key is yielded twice.
        """
        x = self._header.next[0]
        while x is not None:
            if x.flags.mget(_LIVE, FULLY_LINKED):
                yield x.key, x.value
            x = x.next[0]

    def __contains__(self, key: Any) -> bool:
        return self.load(key)[1]

    def __iter__(self) -> Iterator[Any]:
        for key, _ in self.items():
            yield key

    def __len__(self) -> int:
        return self._length

    def __repr__(self) -> str:
        return f"SkipMap({dict(self.items())!r})"