import threading
import time

import pytest

from lro_scan.src.lro_scan.singleflight import SingleFlightCache


class TestSingleFlightCache:
    def test_computes_once_per_key(self):
        cache = SingleFlightCache()
        calls = []

        def compute(key):
            calls.append(key)
            return key.upper()

        assert cache.get_or_compute("a", lambda: compute("a")) == "A"
        assert cache.get_or_compute("a", lambda: compute("a")) == "A"
        assert cache.get_or_compute("b", lambda: compute("b")) == "B"
        assert calls == ["a", "b"]
        assert len(cache) == 2

    def test_concurrent_callers_wait_for_first(self):
        cache = SingleFlightCache()
        started = threading.Event()
        calls = []
        results = []

        def slow():
            calls.append(1)
            started.set()
            time.sleep(0.05)
            return object()

        def worker():
            results.append(cache.get_or_compute("k", slow))

        first = threading.Thread(target=worker)
        first.start()
        started.wait()
        others = [threading.Thread(target=worker) for _ in range(4)]
        for t in others:
            t.start()
        for t in [first, *others]:
            t.join()
        assert len(calls) == 1
        assert len({id(r) for r in results}) == 1

    def test_failures_are_cached(self):
        cache = SingleFlightCache()
        calls = []

        def boom():
            calls.append(1)
            raise ValueError("nope")

        for _ in range(2):
            with pytest.raises(ValueError, match="nope"):
                cache.get_or_compute("k", boom)
        assert calls == [1]
        assert len(cache) == 1
