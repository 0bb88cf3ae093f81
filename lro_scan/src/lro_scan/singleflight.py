from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from concurrent.futures import Future
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlightCache(Generic[T]):
    """Memoizing map where concurrent first requests for a key compute it once.

    The first caller for a key runs ``compute``; callers arriving while it runs
    block on the same slot. Failures are cached too: every later caller for
    that key gets the original exception re-raised.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[Hashable, Future[T]] = {}

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        with self._lock:
            slot = self._slots.get(key)
            owner = slot is None
            if owner:
                slot = Future()
                self._slots[key] = slot
        if owner:
            try:
                slot.set_result(compute())
            except BaseException as exc:
                slot.set_exception(exc)
        return slot.result()

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
