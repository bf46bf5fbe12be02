"""Explicit, caller-owned result cache.

Extraction results are pure functions of ``(path, language, content)``, so
they can be memoised safely. The cache is a plain object handed to the
functions that accept one; nothing in the package keeps cached state at
module level. Values are copied on the way in and out, so a caller that
mutates a result never changes what later callers see.
"""

from __future__ import annotations

import copy
import hashlib
import threading
from collections import OrderedDict
from typing import Any, Hashable, Optional

DEFAULT_CAPACITY = 256


class LRUCache:
    """Fixed-capacity least-recently-used map.

    ``get`` refreshes an entry's recency; ``put`` evicts the least recently
    used entry once *capacity* is exceeded. Access is serialised with a lock
    so one cache can be shared by worker threads.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(namespace: str, path: str, language: Optional[str], content: str) -> str:
        """Stable key for one extraction input.

        *namespace* separates result kinds (signatures, complexity, ...)
        that share the same source input.
        """
        digest = hashlib.sha1()
        for part in (namespace, path, language or "", content):
            digest.update(part.encode("utf-8", errors="replace"))
            digest.update(b"\0")
        return digest.hexdigest()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return copy.deepcopy(self._entries[key])

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = copy.deepcopy(value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
