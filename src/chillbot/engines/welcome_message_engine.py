"""
Welcome messages for new guild members.

When a member joins, the guild record is read (waiting a while if another
command holds it) and, if a welcome channel is configured, the member is
greeted there with a list of opt-in channels they can join.
"""

from __future__ import annotations

import discord

from chillbot.datatypes.checkout_datatypes import CheckoutLocked, CheckoutNotFound, CheckoutSuccess
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.optin.optin_channel import get_optin_category
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("welcome_message_engine")

DEFAULT_LOCKED_GUILD_TIMEOUT_SECONDS = 60.0
JOIN_COMMAND_NAME = "join"


def build_welcome_message(guild: discord.Guild, record: GuildRecord, user_id: int) -> str:
    """Build the greeting, listing opt-in channels when there are any."""
    lines = [f"Hi <@{user_id}>!"]

    category = get_optin_category(guild, record)
    channels = list(category.channels) if category is not None else []
    if channels:
        lines[0] += (
            " This server has a bunch of channels that you can join that you can't see right now,"
            " but you are welcome to join."
        )
        for channel in channels:
            line = f" | {channel.name}"
            topic = channel.topic if isinstance(channel, discord.TextChannel) else None
            if topic:
                line += f" - {topic}"
            lines.append(line)
        lines.append(
            "Let me know if you're interested in any of them by using a command like, "
            f"\"/{JOIN_COMMAND_NAME} {channels[-1].name}\""
        )

    return "\n".join(lines)


class WelcomeMessageEngine:
    """Greets members who join a guild."""

    def __init__(self, repository: GuildRepository, locked_guild_timeout: float = DEFAULT_LOCKED_GUILD_TIMEOUT_SECONDS):
        self.repository = repository
        self.locked_guild_timeout = locked_guild_timeout

    async def handle_user_join(self, member: discord.Member) -> bool:
        """
        Send the welcome message for ``member``.

        Unconfigured and still-locked guilds are skipped silently. Errors are
        logged and never raised, so a failed greeting cannot break event
        dispatch.

        Returns:
            bool: Whether a message was sent.
        """
        guild = member.guild
        guild_id = GuildID(guild.id)
        try:
            match await self.repository.wait_for_checkout(guild_id, self.locked_guild_timeout):
                case CheckoutSuccess(borrowed=borrowed):
                    async with borrowed:
                        borrowed.commit = False
                        return await self._send_welcome(guild, borrowed.instance, member)

                case CheckoutNotFound() | CheckoutLocked():
                    logger.debug("[WELCOME ENGINE] Skipped welcome in guild %s", guild_id)
                    return False

        except Exception:
            logger.exception("[WELCOME ENGINE] Welcome for user %s in guild %s dropped", member.id, guild_id)
        return False

    async def _send_welcome(self, guild: discord.Guild, record: GuildRecord, member: discord.Member) -> bool:
        if record.welcome_channel is None:
            return False

        channel = guild.get_channel(record.welcome_channel.to_int())
        if not isinstance(channel, discord.TextChannel):
            logger.warning(
                "[WELCOME ENGINE] Welcome channel %s missing in guild %s",
                record.welcome_channel,
                guild.id,
            )
            return False

        await channel.send(build_welcome_message(guild, record, member.id))
        logger.debug("[WELCOME ENGINE] Welcomed user %s in guild %s", member.id, guild.id)
        return True
