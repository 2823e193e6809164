"""
Cached opt-in channel listings.

Autocomplete and ``/list`` run far more often than anything that changes the
opt-in channels, so the listing for each guild is kept in a
:class:`GuildMemoryCache` instead of checking out the guild record on every
keystroke. Commands that create, rename or redescribe a channel call
:meth:`OptinChannelCacheManager.clear_cache` after committing.
"""

from __future__ import annotations

import discord

from chillbot.cache.guild_cache import GuildMemoryCache
from chillbot.datatypes.checkout_datatypes import CheckoutLocked, CheckoutNotFound, CheckoutSuccess
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.datatypes.optin_datatypes import (
    OptinCacheResult,
    OptinChannelsListed,
    OptinGuildLocked,
    OptinGuildNotFound,
)
from chillbot.optin import optin_channel
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("optin_channel_cache")

DEFAULT_CACHE_LIFETIME_SECONDS = 60 * 60


class OptinChannelCacheManager:
    """Serves opt-in channel listings from cache, reading the guild record on a miss."""

    def __init__(
        self,
        repository: GuildRepository,
        cache: GuildMemoryCache[OptinChannelsListed] | None = None,
        lifetime: float = DEFAULT_CACHE_LIFETIME_SECONDS,
    ):
        self.repository = repository
        self.cache = cache if cache is not None else GuildMemoryCache()
        self.lifetime = lifetime

    async def get_channels(self, guild: discord.Guild) -> OptinCacheResult:
        """
        Return the opt-in channels of a guild.

        A cache miss does one non-waiting, read-only checkout; a locked guild
        is reported as :class:`OptinGuildLocked` rather than waited on. Only
        successful listings are cached, and they are stored while the record
        is still checked out.

        Raises:
            Exception: Anything the checkout or listing raises, after logging it.
        """
        guild_id = GuildID(guild.id)
        cached, hit = self.cache.try_get(guild_id)
        if hit:
            return cached

        try:
            match await self.repository.checkout(guild_id):
                case CheckoutSuccess(borrowed=borrowed):
                    async with borrowed:
                        borrowed.commit = False
                        listing = optin_channel.list_channels(guild, borrowed.instance)
                        # Must be set before the record goes back; a mutator only
                        # clears the cache after its own checkout and commit
                        if isinstance(listing, OptinChannelsListed):
                            self.cache.set(guild_id, listing, self.lifetime)
                            logger.debug(
                                "[OPTIN CHANNEL CACHE] Cached %d channels for guild %s",
                                len(listing.names_descriptions),
                                guild_id,
                            )
                    return listing

                case CheckoutNotFound():
                    return OptinGuildNotFound(guild_id)

                case CheckoutLocked():
                    return OptinGuildLocked(guild_id)

                case unexpected:
                    raise TypeError(f"Unexpected checkout result {unexpected!r}")

        except Exception:
            logger.exception("[OPTIN CHANNEL CACHE] Cached channel request for guild %s dropped", guild_id)
            raise

    def clear_cache(self, guild_id: GuildID | int) -> None:
        """Forget the cached listing for a guild."""
        guild_id = GuildID(guild_id)
        self.cache.remove(guild_id)
        logger.debug("[OPTIN CHANNEL CACHE] Cleared guild %s, cache stats %s", guild_id, self.cache.get_cache_stats())
