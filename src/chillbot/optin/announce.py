"""
Announcements about opt-in channel changes.

Messages go to the guild's announcement channel with every mention
disabled. Announcing never blocks the command that triggered it: messages
are sent from background tasks whose failures are only logged.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Set

import discord

from chillbot.datatypes.discord_datatypes import UserID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.util.logger import get_logger

logger = get_logger("announce")

_pending_announcements: Set[asyncio.Task] = set()


def channel_creation_message(author_id: UserID, channel_name: str, description: str) -> str:
    return (
        f"<@{author_id}> created a new channel named **{channel_name}** with the description \"{description}\"\n"
        f"Let me know if you're interested by using a command like, \"/join {channel_name}\""
    )


def channel_rename_message(author_id: UserID, old_name: str, new_name: str) -> str:
    return f"<@{author_id}> changed the name of the **{old_name}** channel to **{new_name}**."


def channel_redescribe_message(author_id: UserID, channel_name: str, old_description: str, new_description: str) -> str:
    return (
        f"<@{author_id}> changed the description of the **{channel_name}** channel "
        f"from \"{old_description}\" to \"{new_description}\""
    )


def get_announcement_channel(guild: discord.Guild, record: GuildRecord) -> Optional[discord.TextChannel]:
    """Return the configured announcement channel, or None if unset or gone."""
    if record.announcement_channel is None:
        return None
    channel = guild.get_channel(record.announcement_channel.to_int())
    if not isinstance(channel, discord.TextChannel):
        logger.debug(
            "[ANNOUNCE] Announcement channel %s missing in guild %s",
            record.announcement_channel,
            guild.id,
        )
        return None
    return channel


async def send_announcement(guild: discord.Guild, record: GuildRecord, message: str) -> bool:
    """Send ``message`` to the announcement channel. Returns whether anything was sent."""
    channel = get_announcement_channel(guild, record)
    if channel is None:
        return False
    await _send_to_channel(channel, message)
    return True


async def _send_to_channel(channel: discord.TextChannel, message: str) -> None:
    await channel.send(message, allowed_mentions=discord.AllowedMentions.none())


def schedule_announcement(guild: discord.Guild, record: GuildRecord, message: str) -> Optional[asyncio.Task]:
    """
    Send an announcement in the background.

    The channel is looked up before this returns, so the task never touches
    ``record`` after the caller gives it back.

    Returns:
        The task, or None when there is no announcement channel or no running loop.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("[ANNOUNCE] Cannot announce in guild %s: no running event loop", guild.id)
        return None

    channel = get_announcement_channel(guild, record)
    if channel is None:
        return None

    task = loop.create_task(_send_to_channel(channel, message))
    _pending_announcements.add(task)

    def _cleanup(completed: asyncio.Task) -> None:
        _pending_announcements.discard(completed)
        if completed.cancelled():
            return
        exc = completed.exception()
        if exc is not None:
            logger.error("[ANNOUNCE] Failed to announce in guild %s", guild.id, exc_info=exc)

    task.add_done_callback(_cleanup)
    return task


async def wait_for_pending_announcements() -> None:
    """Wait for every announcement still in flight (used on shutdown)."""
    loop = asyncio.get_running_loop()
    # Tasks left behind by a closed loop can never finish
    pending = [task for task in _pending_announcements if task.get_loop() is loop]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
