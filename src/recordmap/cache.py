"""
Descriptor caching for record types.

One cache is owned by each :class:`recordmap.mapper.Mapper`. Entries are keyed
by ``(record_type, tag)`` and never evicted: the cache grows with the number of
distinct record types seen and its size is observable through ``currsize``.
Uses a cachetools Cache with unbounded maxsize as the backing store.
"""
import logging
import math
import threading
from collections.abc import Iterator

import cachetools

from recordmap.descriptor import TypeDescriptor, build_descriptor

logger = logging.getLogger(__name__)

__all__ = ['DescriptorCache']

CacheKey = tuple[type, str]


class DescriptorCache:
    """Thread-safe store of type descriptors.

    Lookups of cached types take no lock. Building a descriptor for a new
    type happens under the lock with a second lookup, so concurrent first
    use of a type builds it exactly once.
    """

    def __init__(self, private_prefix: str = '_') -> None:
        self.private_prefix = private_prefix
        self._cache: cachetools.Cache = cachetools.Cache(maxsize=math.inf)
        self._lock = threading.RLock()
        self.misses = 0

    def get(self, record_type: type, tag: str) -> TypeDescriptor:
        """Return the cached descriptor, building it on first use."""
        key = (record_type, tag)
        descriptor = self._cache.get(key)
        if descriptor is not None:
            return descriptor

        with self._lock:
            descriptor = self._cache.get(key)
            if descriptor is None:
                self.misses += 1
                logger.debug(f'Descriptor cache miss for {record_type.__qualname__} ({tag=})')
                descriptor = build_descriptor(record_type, tag, self.private_prefix)
                self._cache[key] = descriptor
        return descriptor

    def put(self, record_type: type, tag: str) -> TypeDescriptor:
        """Build a descriptor and overwrite any existing entry."""
        with self._lock:
            descriptor = build_descriptor(record_type, tag, self.private_prefix)
            if (record_type, tag) in self._cache:
                logger.debug(f'Replacing cached descriptor for {record_type.__qualname__} ({tag=})')
            self._cache[(record_type, tag)] = descriptor
        return descriptor

    def clear(self) -> None:
        """Drop every entry. Intended for tests; mappers never call it."""
        with self._lock:
            self._cache.clear()
            self.misses = 0

    @property
    def currsize(self) -> int:
        return len(self._cache)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[CacheKey]:
        with self._lock:
            return iter(list(self._cache))
