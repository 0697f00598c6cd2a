"""Level selection and per-node link storage for skip lists."""

from __future__ import annotations

import random
from typing import Any

MAX_LEVEL = 16
P = 0.25
DEFAULT_HIGHEST_LEVEL = 3

_ONE_IN = round(1 / P)


def random_level() -> int:
    """Pick a node level: each extra level is kept with probability ``P``."""
    level = 1
    while random.randrange(_ONE_IN) == 0:
        level += 1
    return min(level, MAX_LEVEL)


class LinkArray:
    """Fixed-size array of forward links, one per level of a node."""

    __slots__ = ("_links",)

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError("size must not be negative")
        self._links: list[Any] = [None] * size

    def _check(self, index: int) -> int:
        if not 0 <= index < len(self._links):
            raise IndexError(f"link index {index} out of range")
        return index

    def __getitem__(self, index: int) -> Any:
        return self._links[self._check(index)]

    def __setitem__(self, index: int, node: Any) -> None:
        self._links[self._check(index)] = node

    def __len__(self) -> int:
        return len(self._links)