"""Decision cache for the expert router.

Caches routing decisions keyed by tool and canonicalized arguments so
repeated requests skip scoring. Entries expire a fixed time after insertion
and are dropped lazily when read; the least recently used entry is evicted
when the cache is full.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from skill_router.routing.models import RoutingDecision

logger = structlog.get_logger(__name__)


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def _normalize(value: Any) -> Any:
    """Map a value onto JSON-native structures without losing its type.

    Only str, int, float, bool and None pass through unchanged. Mappings
    become sorted lists of ``[key, value]`` pairs so keys of any type can
    coexist; sets are sorted; everything else is tagged with its type.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Mapping):
        pairs = [[_normalize(k), _normalize(v)] for k, v in value.items()]
        return {"__map__": sorted(pairs, key=_dump)}
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    if isinstance(value, tuple):
        return {"__tuple__": [_normalize(item) for item in value]}
    if isinstance(value, (set, frozenset)):
        return {"__set__": sorted((_normalize(item) for item in value), key=_dump)}
    return {"__repr__": [type(value).__qualname__, repr(value)]}


def canonicalize_arguments(arguments: Mapping[str, Any]) -> str:
    """Serialize arguments so logically equal payloads produce equal strings.

    Mapping entries and set members are ordered by their own serialized
    form, so mixed key types are accepted. Values of different types never
    share a serialization, e.g. ``{"a"}`` and ``"{'a'}"`` stay distinct.
    """
    return _dump(_normalize(arguments))


def make_cache_key(tool: str, arguments: Mapping[str, Any]) -> str:
    """Create the cache key for a (tool, arguments) pair.

    Args:
        tool: Tool name
        arguments: Request arguments

    Returns:
        ``<tool>:<32-char hex digest of the canonical arguments>``
    """
    digest = hashlib.sha256(canonicalize_arguments(arguments).encode("utf-8")).hexdigest()
    return f"{tool}:{digest[:32]}"


@dataclass
class CacheEntry:
    """Single cached decision.

    Attributes:
        key: The cache key
        decision: The decision produced on first computation
        expires_at: Monotonic deadline after which the entry is stale
        hit_count: Number of times this entry was served
    """

    key: str
    decision: RoutingDecision
    expires_at: float
    hit_count: int = 0

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


@dataclass
class DecisionCacheStats:
    """Counters describing cache behavior.

    Attributes:
        hits: Lookups served from the cache
        misses: Lookups that found nothing usable
        evictions: Entries removed to make room
        expirations: Entries dropped because their TTL had passed
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class DecisionCache:
    """TTL-bounded LRU cache of routing decisions.

    Example:
        >>> cache = DecisionCache(max_entries=1000, default_ttl_ms=60000)
        >>> key = make_cache_key("search", {"query": "testing"})
        >>> await cache.set(key, decision)
        >>> cached = await cache.get(key)
    """

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        default_ttl_ms: int = 60000,
    ) -> None:
        """Initialize the cache.

        Args:
            max_entries: Maximum number of cached decisions (default 1000)
            default_ttl_ms: Default TTL in milliseconds (default 60000)
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._default_ttl_ms = default_ttl_ms
        self._stats = DecisionCacheStats()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> RoutingDecision | None:
        """Get a cached decision if it exists and has not expired.

        Args:
            key: The cache key

        Returns:
            The cached decision, or None if absent or expired
        """
        async with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired:
                del self._entries[key]
                self._stats.misses += 1
                self._stats.expirations += 1
                logger.debug("decision_cache_expired", key=key)
                return None

            self._entries.move_to_end(key)
            entry.hit_count += 1
            self._stats.hits += 1
            logger.debug("decision_cache_hit", key=key, hits=entry.hit_count)
            return entry.decision

    async def set(
        self,
        key: str,
        decision: RoutingDecision,
        ttl_ms: int | None = None,
    ) -> None:
        """Cache a decision.

        Args:
            key: The cache key
            decision: The decision to cache
            ttl_ms: TTL in milliseconds (uses the default if not specified)
        """
        ttl = ttl_ms if ttl_ms is not None else self._default_ttl_ms
        async with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._max_entries:
                self._evict_oldest_unlocked()

            self._entries[key] = CacheEntry(
                key=key,
                decision=decision,
                expires_at=time.monotonic() + ttl / 1000.0,
            )
            logger.debug("decision_cache_set", key=key, ttl_ms=ttl)

    async def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it was present."""
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> int:
        """Clear all entries.

        Returns:
            Number of entries cleared
        """
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            if count:
                logger.info("decision_cache_cleared", entries=count)
            return count

    def _evict_oldest_unlocked(self) -> None:
        """Evict the least recently used entry. Caller must hold the lock."""
        if not self._entries:
            return
        key, _ = self._entries.popitem(last=False)
        self._stats.evictions += 1
        logger.debug("decision_cache_evicted", key=key)

    def get_stats(self) -> DecisionCacheStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = DecisionCacheStats()

    @property
    def size(self) -> int:
        """Current number of entries, expired ones included until read."""
        return len(self._entries)

    @property
    def max_size(self) -> int:
        return self._max_entries


__all__ = [
    "CacheEntry",
    "DecisionCache",
    "DecisionCacheStats",
    "canonicalize_arguments",
    "make_cache_key",
]
