import threading

import pytest

from skipcoll.flag import FULLY_LINKED, MARKED, BitFlag

F0, F1, F2, F3, F4, F5, F6, F7 = (1 << i for i in range(8))


def test_set_true_and_get():
    x = BitFlag()
    x.set_true(F1 | F3)
    assert not x.get(F0)
    assert x.get(F1)
    assert not x.get(F2)
    assert x.get(F3)
    assert x.mget(F0 | F1 | F2 | F3, F1 | F3)


def test_set_true_is_idempotent():
    x = BitFlag()
    x.set_true(F1 | F3)
    x.set_true(F1)
    x.set_true(F1 | F3)
    assert x.bits == F1 + F3


def test_set_false_clears_only_requested_bits():
    x = BitFlag()
    x.set_true(F1 | F3)
    x.set_false(F1 | F2)
    assert not x.get(F0)
    assert not x.get(F1)
    assert not x.get(F2)
    assert x.get(F3)
    assert x.mget(F0 | F1 | F2 | F3, F3)
    x.set_false(F1 | F2)
    assert x.bits == F3


@pytest.mark.parametrize(
    "bits, expected",
    [
        (0, False),
        (FULLY_LINKED, True),
        (MARKED, False),
        (FULLY_LINKED | MARKED, False),
    ],
)
def test_mget_linked_and_unmarked(bits, expected):
    assert BitFlag(bits).mget(FULLY_LINKED | MARKED, FULLY_LINKED) is expected


def test_concurrent_set_true_keeps_all_bits():
    x = BitFlag()
    threads = [threading.Thread(target=x.set_true, args=(1 << i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert x.bits == 0xFF