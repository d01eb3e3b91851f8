"""Per-key mutual exclusion for spend authorization"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List


class KeyedLockManager:
    """
    One lock per key, created on demand and dropped when no thread holds or
    waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, List] = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
