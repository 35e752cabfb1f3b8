"""LRU cache shared by concurrent invocations."""

import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

T = TypeVar("T")


class LRUCache(Generic[T]):
    """
    LRU cache guarded by a lock.

    Values must be treated as immutable by callers, since the same object is
    handed to every thread that hits the entry.
    """

    def __init__(self, max_size: int = 64) -> None:
        """
        Args:
            max_size: Maximum number of items to cache.
        """
        if max_size <= 0:
            msg = "max_size must be positive"
            raise ValueError(msg)
        self._max_size = max_size
        self._cache: OrderedDict[Hashable, T] = OrderedDict()
        self._lock = threading.Lock()

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        """
        Return the cached item, or compute, store and return it.

        The loader runs under the lock so a reload never races with readers of
        the same cache.

        Args:
            key: Cache key.
            loader: Called on a miss; exceptions propagate and nothing is stored.
        """
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]
            value = loader()
            if len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
            self._cache[key] = value
            return value

    def clear(self) -> None:
        """Clear all items from cache."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
