"""
Opt-in channel behavior.

Opt-in channels are text channels under the guild's opt-in category that
members cannot see by default. Each one has a companion role named
``chill-<channel id>`` that grants view access; joining a channel means
getting its role.

The opt-in category must let the bot view every channel and should hide
its channels from everyone else.

Every function here takes a guild record that the caller has checked out.
None of them modify the record; callers decide whether to commit.
Channel names are matched case-insensitively.
"""

from __future__ import annotations

from typing import Optional

import discord

from chillbot.datatypes.discord_datatypes import ChannelID, UserID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.datatypes.optin_datatypes import (
    CreateOutcome,
    CreateResult,
    MembershipResult,
    NameDescription,
    OptinChannelsListed,
    OptinListResult,
    OptinNoCategory,
    RenameOutcome,
    RenameResult,
    UpdateDescriptionResult,
)
from chillbot.optin import announce
from chillbot.optin.permissions import has_permission, member_role_ids
from chillbot.util.logger import get_logger

logger = get_logger("optin_channel")

ROLE_NAME_PREFIX = "chill-"


def get_role_name(channel_id: ChannelID | int) -> str:
    """Return the name of the role that grants access to an opt-in channel."""
    return f"{ROLE_NAME_PREFIX}{channel_id}"


def get_optin_category(guild: discord.Guild, record: GuildRecord) -> Optional[discord.CategoryChannel]:
    """Return the guild's opt-in category, or None if unset or deleted."""
    if record.optin_parent_category is None:
        return None
    category = guild.get_channel(record.optin_parent_category.to_int())
    if not isinstance(category, discord.CategoryChannel):
        logger.debug(
            "[OPTIN CHANNEL] Opt-in category %s is missing in guild %s",
            record.optin_parent_category,
            guild.id,
        )
        return None
    return category


def _require_name(value: str, argument: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{argument} must not be empty")
    return value.strip()


def _find_channel(category: discord.CategoryChannel, name: str, text_only: bool = False):
    wanted = name.casefold()
    for channel in category.channels:
        if text_only and not isinstance(channel, discord.TextChannel):
            continue
        if channel.name.casefold() == wanted:
            return channel
    return None


def _find_channel_role(guild: discord.Guild, channel) -> Optional[discord.Role]:
    role_name = get_role_name(channel.id)
    for role in guild.roles:
        if role.name == role_name:
            return role
    return None


async def create_channel(
    guild: discord.Guild,
    record: GuildRecord,
    author: discord.Member,
    channel_name: str,
    description: str,
    check_permission: bool = True,
) -> CreateOutcome:
    """
    Create an opt-in channel and its role, and give the role to the author.

    Args:
        guild: Guild to create the channel in.
        record: Checked-out record of that guild.
        author: Member asking for the channel.
        channel_name: Name of the new channel.
        description: Topic of the new channel.
        check_permission: Whether the author must hold one of the creator roles.

    Raises:
        ValueError: If ``channel_name`` is empty.
    """
    channel_name = _require_name(channel_name, "channel_name")
    description = description or ""

    category = get_optin_category(guild, record)
    if category is None:
        return CreateOutcome(CreateResult.NO_OPTIN_CATEGORY)

    if check_permission and not has_permission(member_role_ids(author), record.optin_creators_roles):
        return CreateOutcome(CreateResult.NO_PERMISSIONS)

    if _find_channel(category, channel_name) is not None:
        return CreateOutcome(CreateResult.CHANNEL_NAME_USED)

    channel = await guild.create_text_channel(channel_name, category=category, topic=description)
    role = await guild.create_role(name=get_role_name(channel.id), hoist=False, mentionable=False)
    await channel.set_permissions(role, view_channel=True)
    await author.add_roles(role)

    logger.info("[OPTIN CHANNEL] Created opt-in channel %s (%s) in guild %s", channel_name, channel.id, guild.id)
    announce.schedule_announcement(
        guild, record, announce.channel_creation_message(UserID(author.id), channel_name, description)
    )
    return CreateOutcome(CreateResult.SUCCESS, ChannelID(channel.id))


async def rename_channel(
    guild: discord.Guild,
    record: GuildRecord,
    author: discord.Member,
    current_name: str,
    new_name: str,
    check_permission: bool = True,
) -> RenameOutcome:
    """Rename an opt-in channel. Permission comes from the updater roles."""
    current_name = _require_name(current_name, "current_name")
    new_name = _require_name(new_name, "new_name")

    category = get_optin_category(guild, record)
    if category is None:
        return RenameOutcome(RenameResult.NO_OPTIN_CATEGORY)

    if check_permission and not has_permission(member_role_ids(author), record.optin_updaters_roles):
        return RenameOutcome(RenameResult.NO_PERMISSIONS)

    channel = _find_channel(category, current_name, text_only=True)
    if channel is None:
        return RenameOutcome(RenameResult.NO_SUCH_CHANNEL)

    if _find_channel(category, new_name) is not None:
        return RenameOutcome(RenameResult.NEW_CHANNEL_NAME_USED)

    await channel.edit(name=new_name)

    logger.info("[OPTIN CHANNEL] Renamed %s to %s in guild %s", current_name, new_name, guild.id)
    announce.schedule_announcement(
        guild, record, announce.channel_rename_message(UserID(author.id), current_name, new_name)
    )
    return RenameOutcome(RenameResult.SUCCESS, ChannelID(channel.id))


async def update_description(
    guild: discord.Guild,
    record: GuildRecord,
    author: discord.Member,
    channel_name: str,
    description: str,
    check_permission: bool = True,
) -> UpdateDescriptionResult:
    """Change an opt-in channel's topic. Announces only when the topic changed."""
    channel_name = _require_name(channel_name, "channel_name")
    description = description or ""

    category = get_optin_category(guild, record)
    if category is None:
        return UpdateDescriptionResult.NO_OPTIN_CATEGORY

    if check_permission and not has_permission(member_role_ids(author), record.optin_updaters_roles):
        return UpdateDescriptionResult.NO_PERMISSIONS

    channel = _find_channel(category, channel_name, text_only=True)
    if channel is None:
        return UpdateDescriptionResult.NO_SUCH_CHANNEL

    old_description = channel.topic or ""
    await channel.edit(topic=description)

    if old_description != description:
        announce.schedule_announcement(
            guild,
            record,
            announce.channel_redescribe_message(UserID(author.id), channel_name, old_description, description),
        )
    return UpdateDescriptionResult.SUCCESS


async def _change_membership(
    guild: discord.Guild,
    record: GuildRecord,
    author: discord.Member,
    channel_name: str,
    join: bool,
) -> MembershipResult:
    category = get_optin_category(guild, record)
    if category is None:
        return MembershipResult.NO_OPTIN_CATEGORY

    channel = _find_channel(category, channel_name or "")
    if channel is None:
        return MembershipResult.NO_SUCH_CHANNEL

    role = _find_channel_role(guild, channel)
    if role is None:
        logger.warning("[OPTIN CHANNEL] Role for channel %s is missing in guild %s", channel.id, guild.id)
        return MembershipResult.ROLE_MISSING

    if join:
        await author.add_roles(role)
    else:
        await author.remove_roles(role)
    return MembershipResult.SUCCESS


async def join_channel(
    guild: discord.Guild,
    record: GuildRecord,
    author: discord.Member,
    channel_name: str,
) -> MembershipResult:
    """Give the author the role of an opt-in channel."""
    return await _change_membership(guild, record, author, channel_name, join=True)


async def leave_channel(
    guild: discord.Guild,
    record: GuildRecord,
    author: discord.Member,
    channel_name: str,
) -> MembershipResult:
    """Take the role of an opt-in channel away from the author."""
    return await _change_membership(guild, record, author, channel_name, join=False)


def list_channels(guild: discord.Guild, record: GuildRecord) -> OptinListResult:
    """List names and topics of every channel in the opt-in category."""
    category = get_optin_category(guild, record)
    if category is None:
        return OptinNoCategory(record.guild_id)

    names_descriptions = tuple(
        NameDescription(
            name=channel.name or "",
            description=(channel.topic or "") if isinstance(channel, discord.TextChannel) else "",
        )
        for channel in category.channels
    )
    return OptinChannelsListed(names_descriptions)
