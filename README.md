# skipcoll

Thread-safe collections built on skip lists and ring buffers:

- `skipcoll.skipset.SkipSet`: an ordered set whose values are kept in ascending order.
- `skipcoll.skipmap.SkipMap`: an ordered map with `store`, `load`, `load_or_store`,
  `load_or_store_lazy`, `load_and_delete` and `delete`.
- `skipcoll.ring.BoundedQueue`: a FIFO ring queue holding at most
  `SCQ_SIZE` (65536) items.
- `skipcoll.lscq.UnboundedQueue`: a FIFO queue that chains bounded rings
  together as it grows.

Every operation may be called from several threads at once.

## Installation

```
pip install skipcoll
```

## Ordered set

```python
from skipcoll.skipset import SkipSet

s = SkipSet()
s.add(15)
s.add(10)
s.add(12)
print(10 in s)       # True
print(list(s))       # [10, 12, 15]
s.remove(15)
print(len(s))        # 2
```

`add` returns `False` if the value was already present; `remove` returns
`False` if it was absent. `contains(value)` is the same as `value in s`.
Values must be comparable with one another using `<` and `==`.

## Ordered map

```python
from skipcoll.skipmap import SkipMap

m = SkipMap()
m.store(123, "a")
value, ok = m.load(123)                      # ("a", True)
value, ok = m.load(999)                      # (None, False)
actual, loaded = m.load_or_store(123, "b")   # ("a", True)
actual, loaded = m.load_or_store_lazy(7, lambda: "computed")  # ("computed", False)
for key, value in m.items():
    print(key, value)                        # keys in ascending order
value, loaded = m.load_and_delete(7)         # ("computed", True)
m.delete(123)                                # True
```

The factory given to `load_or_store_lazy` is called only when the key is
absent, and at most once per call. Iterating a `SkipMap` yields its keys in
ascending order; `key in m` tells whether a key is present. `items()` is not
a snapshot: entries changed while it runs may or may not be seen, but no key
is yielded twice.

## Queues

```python
from queue import Empty

from skipcoll.lscq import UnboundedQueue

q = UnboundedQueue()
q.enqueue("first")
q.enqueue("second")
print(q.dequeue())   # first
print(q.dequeue())   # second
try:
    q.dequeue()
except Empty:
    print("empty")
```

`BoundedQueue.enqueue` returns `True` on success and `False` once the ring is
full or has been closed with `close()` (see the `closed` property); items
already queued can still be taken after closing. `BoundedQueue.dequeue` and
`UnboundedQueue.dequeue` both raise `queue.Empty` when there is nothing to
take. `UnboundedQueue.enqueue` always succeeds: when its current ring fills,
it closes that ring and links a new one after it.

`skipcoll.ring` also exposes the helpers `load_scq_flags`, `new_scq_flags`
and `cache_remap_16byte` that describe a ring slot's state and position.

## Building blocks

- `skipcoll.flag.BitFlag`: a set of bit flags with `set_true`, `set_false`,
  `get` and `mget`, guarded by a lock.
- `skipcoll.levels.random_level()`: picks a skip-list node level between 1
  and `MAX_LEVEL` (16), each further level kept with probability 0.25.
- `skipcoll.levels.LinkArray`: a fixed-size array of forward links that
  raises `IndexError` outside its bounds.

## What it does not do

The collections live in memory only; nothing is stored on disk. The queues
never block: there is no waiting `get` with a timeout, and an empty queue is
reported at once with `queue.Empty`.

## Running the tests

```
pip install -e .[test]
pytest
```