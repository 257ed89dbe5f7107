"""In-process LRU tier of the translation cache.

Cache-of-the-cache in front of the persistent store: a miss here says nothing
about the persistent tier.
"""

from collections import OrderedDict
from typing import Optional

from autotranslate.config import DEFAULT_CACHE_LIMIT, coerce_positive_int


class MemoryCache:
    """Bounded least-recently-used map from fingerprint to translated text."""

    def __init__(self, capacity=DEFAULT_CACHE_LIMIT):
        self.capacity = coerce_positive_int(capacity, DEFAULT_CACHE_LIMIT)
        self._entries: OrderedDict[str, str] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[str]:
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def set(self, key: str, value: str) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value
        if len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def resize(self, capacity) -> "MemoryCache":
        """Return a fresh, empty cache with the new capacity.

        Entries are not carried over; they remain available from the persistent tier.
        """
        return MemoryCache(capacity)
