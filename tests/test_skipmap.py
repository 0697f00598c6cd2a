import random
import threading
from concurrent.futures import ThreadPoolExecutor

from skipcoll.skipmap import SkipMap


def _run_parallel(fn, count, workers=16):
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(fn, range(count)))


def test_string_map_correctness():
    m = SkipMap()
    m.store("123", "123")
    assert m.load("123") == ("123", True)
    assert len(m) == 1

    m.store("123", "456")
    assert m.load("123") == ("456", True)
    assert len(m) == 1

    m.store("123", 456)
    assert m.load("123") == (456, True)
    assert len(m) == 1

    assert m.delete("123") is True
    assert m.load("123")[1] is False
    assert len(m) == 0

    assert m.load_or_store("123", 456) == (456, False)
    assert len(m) == 1
    assert m.load("123") == (456, True)

    assert m.load_and_delete("123") == (456, True)
    assert len(m) == 0

    assert m.load_or_store("123", 456)[1] is False
    assert len(m) == 1
    m.load_or_store("456", 123)
    assert len(m) == 2

    for key, _ in m.items():
        if key == "123":
            m.store("123", 123)
        elif key == "456":
            m.load_and_delete("456")

    assert m.load("123") == (123, True)
    assert len(m) == 1


def test_string_map_concurrent():
    m = SkipMap()
    m.store("123", 123)
    _run_parallel(lambda i: m.store(str(i), i + 1000), 1000)
    assert m.delete("600") is True
    count = sum(1 for _ in m.items())

    value, ok = m.load("500")
    assert ok and isinstance(value, int) and value == 1500
    assert m.load("600")[1] is False
    # "123" was overwritten by the stores, so 1000 keys minus the deleted one.
    assert len(m) == 999
    assert count == len(m)


def test_skip_map_correctness():
    m = SkipMap()
    m.store(123, "123")
    assert m.load(123) == ("123", True)
    assert len(m) == 1

    m.store(123, "456")
    assert m.load(123) == ("456", True)

    m.store(123, 456)
    assert m.load(123) == (456, True)
    assert len(m) == 1

    m.delete(123)
    assert m.load(123) == (None, False)
    assert len(m) == 0

    assert m.load_or_store(123, 456) == (456, False)
    assert len(m) == 1
    assert m.load_or_store(123, 789) == (456, True)
    assert len(m) == 1
    assert m.load(123) == (456, True)

    assert m.load_and_delete(123) == (456, True)
    assert len(m) == 0

    assert m.load_or_store(123, 456)[1] is False
    m.load_or_store(456, 123)
    assert len(m) == 2

    for key in list(iter(m)):
        if key == 123:
            m.store(123, 123)
        elif key == 456:
            m.load_and_delete(456)

    assert m.load(123) == (123, True)
    assert len(m) == 1


def test_skip_map_concurrent_store_delete_range():
    m = SkipMap()
    _run_parallel(lambda i: m.store(i, i + 1000), 1000)
    assert m.delete(600) is True
    count = sum(1 for _ in m.items())

    value, ok = m.load(500)
    assert ok and isinstance(value, int) and value == 1500
    assert m.load(600)[1] is False
    assert 600 not in m
    assert 500 in m
    assert len(m) == 999
    assert count == 999


def test_missing_key_operations():
    m = SkipMap()
    assert m.delete(1) is False
    assert m.load_and_delete(1) == (None, False)
    assert m.load(1) == (None, False)
    assert 1 not in m


def test_against_dict_model():
    rng = random.Random(1234)
    reference = {}
    m = SkipMap()
    for _ in range(20000):
        rd = rng.randrange(10)
        r1, r2 = rng.randrange(100), rng.randrange(100)
        if rd == 0:
            reference[r1] = r2
            m.store(r1, r2)
        elif rd == 1:
            expected = (reference.pop(r1), True) if r1 in reference else (None, False)
            assert m.load_and_delete(r1) == expected
        elif rd == 2:
            if r1 in reference:
                expected = (reference[r1], True)
            else:
                reference[r1] = r2
                expected = (r2, False)
            assert m.load_or_store(r1, r2) == expected
        elif rd == 3:
            reference.pop(r1, None)
            m.delete(r1)
        elif rd == 4:
            assert dict(m.items()) == reference
        else:
            expected = (reference[r1], True) if r1 in reference else (None, False)
            assert m.load(r1) == expected
    assert len(m) == len(reference)
    assert list(m) == sorted(reference)


def test_load_or_store_single_winner():
    mp = SkipMap()
    results = _run_parallel(lambda i: mp.load_or_store(123, rng_value(i)), 999)
    added = sum(1 for _, loaded in results if not loaded)
    actuals = {actual for actual, _ in results}
    assert added == 1
    assert len(actuals) == 1


def rng_value(i):
    return random.Random(i).getrandbits(63)


def test_load_and_delete_single_winner():
    mp = SkipMap()
    mp.store(123, 555)
    results = _run_parallel(lambda i: mp.load_and_delete(123), 999)
    winners = [value for value, loaded in results if loaded]
    assert winners == [555]
    assert len(mp) == 0


def test_load_or_store_lazy_single_call():
    mp = SkipMap()
    calls = []
    calls_lock = threading.Lock()

    def factory():
        with calls_lock:
            calls.append(1)
        return random.getrandbits(63)

    results = _run_parallel(lambda i: mp.load_or_store_lazy(123, factory), 999)
    added = sum(1 for _, loaded in results if not loaded)
    assert added == 1
    assert len(calls) == 1
    assert len({actual for actual, _ in results}) == 1


def test_load_or_store_lazy_existing_does_not_call():
    mp = SkipMap()
    mp.store(1, "one")

    def factory():
        raise AssertionError("factory must not be called")

    assert mp.load_or_store_lazy(1, factory) == ("one", True)
    assert mp.load_or_store_lazy(2, lambda: "two") == ("two", False)
    assert mp.load(2) == ("two", True)


def test_iteration_is_ascending():
    m = SkipMap()
    keys = list(range(500))
    random.Random(7).shuffle(keys)
    for k in keys:
        m.store(k, k * 2)
    assert list(m) == list(range(500))
    assert list(m.items())[:3] == [(0, 0), (1, 2), (2, 4)]


def test_concurrent_range():
    map_size = 1 << 10
    m = SkipMap()
    for n in range(1, map_size + 1):
        m.store(n, n)

    done = threading.Event()

    def writer(g):
        r = random.Random(g)
        i = 0
        while not done.is_set():
            for n in range(1, map_size):
                if done.is_set():
                    return
                if r.randrange(map_size) == 0:
                    m.store(n, n * i * g)
                else:
                    m.load(n)
            i += 1

    threads = [threading.Thread(target=writer, args=(g,)) for g in range(1, 5)]
    for t in threads:
        t.start()
    try:
        for _ in range(16):
            seen = set()
            for k, v in m.items():
                assert v % k == 0
                assert k not in seen
                seen.add(k)
            assert len(seen) == map_size
    finally:
        done.set()
        for t in threads:
            t.join()