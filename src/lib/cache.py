"""
Compiled artifact cache

Generated method source is hashed together with the compile mode; the
key has no namespace or class-name part, so any two calls producing the
same method source share one compiled artifact for the life of the
process. Entries are never evicted.
"""

import hashlib
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models.units import CacheEntry


def cacheKey_make(source: str, mode: str) -> str:
    """
    Cache key of a generated method

    Example:
        >>> len(cacheKey_make("def execute_code(self, *parameters):\\n    return 1\\n", "sync:optimize=-1"))
        64
    """
    return hashlib.sha256(f"{mode}\0{source}".encode("utf-8")).hexdigest()


class ArtifactCache(ABC):
    """Key to CacheEntry store used by ScriptEngine"""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    def set(self, key: str, entry: CacheEntry) -> None:
        ...

    @abstractmethod
    def contains(self, key: str) -> bool:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    @abstractmethod
    def values(self) -> List[CacheEntry]:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, key: str) -> bool:
        return self.contains(key)


class MemoryArtifactCache(ArtifactCache):
    """
    In-process dictionary cache guarded by a lock

    Concurrent misses on the same key may both compile; the last set()
    wins.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def values(self) -> List[CacheEntry]:
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Process-wide cache shared by every engine that is not given its own
default_cache = MemoryArtifactCache()
