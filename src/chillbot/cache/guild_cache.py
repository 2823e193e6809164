"""
Per-guild TTL cache.

Caches a derived, read-only value per guild (for example the opt-in channel
listing) so reads do not have to check out the guild record. Entries expire
on their own after a TTL; an expired entry is dropped when it is read, and
every ``set`` sweeps out the rest, so guilds that are never read again do not
pile up. Code that commits
a change to a guild record must call :meth:`GuildMemoryCache.remove` for that
guild before reporting success, so later reads in this process never see the
old value.

The cache is not shared across processes; there, staleness is bounded only
by the TTL.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.util.logger import get_logger

logger = get_logger("guild_cache")

T = TypeVar("T")


class GuildMemoryCache(Generic[T]):
    """
    TTL-based cache keyed by guild id.

    Each entry stores its value and an absolute expiry on a monotonic clock.
    ``None`` as expiry means the entry never expires.
    """

    def __init__(
        self,
        default_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: Seconds an entry lives when ``set`` gets no ttl; None keeps it forever.
            clock: Monotonic time source, replaceable in tests.
        """
        self._entries: Dict[GuildID, Tuple[T, Optional[float]]] = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def try_get(self, guild_id: GuildID) -> Tuple[Optional[T], bool]:
        """
        Look up the cached value for a guild.

        Returns:
            (value, True) on a hit, (None, False) when missing or expired.
        """
        entry = self._entries.get(guild_id)
        if entry is None:
            self._misses += 1
            return None, False

        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[guild_id]
            self._misses += 1
            logger.debug("[GUILD CACHE] Expired entry for guild %s", guild_id)
            return None, False

        self._hits += 1
        return value, True

    def set(self, guild_id: GuildID, value: T, ttl: Optional[float] = None) -> T:
        """Store ``value`` for a guild, replacing any existing entry, and return it."""
        ttl = self._default_ttl if ttl is None else ttl
        if ttl is not None and ttl < 0:
            raise ValueError(f"ttl must not be negative, got {ttl}")

        now = self._clock()
        self._evict_expired(now)
        expires_at = None if ttl is None else now + ttl
        self._entries[guild_id] = (value, expires_at)
        logger.debug("[GUILD CACHE] Set entry for guild %s (ttl=%s)", guild_id, ttl)
        return value

    def _evict_expired(self, now: float) -> None:
        expired = [
            guild_id
            for guild_id, (_, expires_at) in self._entries.items()
            if expires_at is not None and now >= expires_at
        ]
        for guild_id in expired:
            del self._entries[guild_id]
        if expired:
            logger.debug("[GUILD CACHE] Evicted %d expired entries", len(expired))

    def remove(self, guild_id: GuildID) -> bool:
        """Drop the entry for a guild. Returns whether one was present."""
        removed = self._entries.pop(guild_id, None) is not None
        if removed:
            logger.debug("[GUILD CACHE] Removed entry for guild %s", guild_id)
        return removed

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        count = len(self._entries)
        self._entries.clear()
        logger.debug("[GUILD CACHE] Cleared all %d entries", count)
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def get_cache_stats(self) -> Dict[str, Optional[float]]:
        """Return entry count, hit/miss counters and the default TTL."""
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "default_ttl": self._default_ttl,
        }
