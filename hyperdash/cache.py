"""
Memoization layer for derived views.

This module provides a simple in-memory cache that stores computed views
by query hash so that an unchanged selection is not recomputed. Nothing is
written to disk; entries live only as long as the owning session.
"""

import hashlib
import json
import threading
from typing import Any, Dict, Optional
from hyperdash.errors import CacheError


class MemoCache:
    """
    An in-memory cache keyed by query parameters.

    Representation Invariants:
        - every stored key is the hash of a JSON-serializable dict
        - max_entries > 0
    """

    def __init__(self, max_entries: int = 32):
        """
        Initialize the cache.

        Args:
            max_entries: Oldest entries are evicted beyond this size
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _compute_hash(self, query_params: dict) -> str:
        """
        Compute a hash for query parameters.

        Args:
            query_params: Dictionary of query parameters

        Returns:
            Hex string hash

        Raises:
            CacheError: If the parameters are not JSON-serializable
        """
        # Sort keys for consistent hashing
        try:
            sorted_params = json.dumps(query_params, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Query parameters are not hashable: {e}") from e
        return hashlib.md5(sorted_params.encode()).hexdigest()

    def get(self, query_params: dict) -> Optional[Any]:
        """
        Retrieve a memoized value if it exists.

        Returns:
            The stored value or None if not found
        """
        cache_key = self._compute_hash(query_params)
        with self._lock:
            return self._entries.get(cache_key)

    def set(self, query_params: dict, data: Any) -> None:
        """
        Store a value.

        Postconditions:
            - At most max_entries values are held (insertion order eviction)
            - Safe to call from several threads at once
        """
        cache_key = self._compute_hash(query_params)
        with self._lock:
            self._entries.pop(cache_key, None)
            self._entries[cache_key] = data
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]

    def clear(self) -> None:
        """Remove all memoized values."""
        with self._lock:
            self._entries.clear()

    def exists(self, query_params: dict) -> bool:
        """Check if a value is memoized for the query."""
        cache_key = self._compute_hash(query_params)
        with self._lock:
            return cache_key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
