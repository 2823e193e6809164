"""Small stand-ins for py-cord guild objects used across the cog and opt-in tests."""

import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord

_ids = itertools.count(900_000)


def make_text_channel(channel_id=None, name="general", topic=""):
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id if channel_id is not None else next(_ids)
    channel.name = name
    channel.topic = topic
    channel.mention = f"<#{channel.id}>"
    channel.edit = AsyncMock()
    channel.set_permissions = AsyncMock()
    channel.send = AsyncMock()
    return channel


def make_voice_channel(channel_id=None, name="voice"):
    channel = MagicMock(spec=discord.VoiceChannel)
    channel.id = channel_id if channel_id is not None else next(_ids)
    channel.name = name
    return channel


def make_category(category_id, channels=(), name="opt-ins"):
    category = MagicMock(spec=discord.CategoryChannel)
    category.id = category_id
    category.name = name
    category.channels = list(channels)
    return category


def make_role(role_id=None, name="role"):
    role = MagicMock(spec=discord.Role)
    role.id = role_id if role_id is not None else next(_ids)
    role.name = name
    return role


def make_member(member_id=1234, roles=(), guild=None, manage_guild=False):
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.roles = list(roles)
    member.guild = guild
    member.guild_permissions = SimpleNamespace(manage_guild=manage_guild)
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


class FakeGuild:
    """Guild with an in-memory channel and role registry."""

    def __init__(self, guild_id, channels=(), roles=()):
        self.id = guild_id
        self._channels = {}
        self.roles = list(roles)
        for channel in channels:
            self.add_channel(channel)
        self.create_text_channel = AsyncMock(side_effect=self._create_text_channel)
        self.create_role = AsyncMock(side_effect=self._create_role)

    def add_channel(self, channel):
        self._channels[channel.id] = channel
        if isinstance(channel, discord.CategoryChannel):
            for child in channel.channels:
                self._channels[child.id] = child
        return channel

    def get_channel(self, channel_id):
        return self._channels.get(channel_id)

    async def _create_text_channel(self, name, *, category=None, topic=None):
        channel = make_text_channel(name=name, topic=topic)
        self._channels[channel.id] = channel
        if category is not None:
            category.channels.append(channel)
        return channel

    async def _create_role(self, *, name, hoist=False, mentionable=False):
        role = make_role(name=name)
        self.roles.append(role)
        return role


class FakeContext:
    """Application context capturing every respond call."""

    def __init__(self, guild=None, user=None):
        self.guild = guild
        self.guild_id = guild.id if guild is not None else None
        self.user = user
        self.author = user
        self.respond = AsyncMock()

    @property
    def last_response(self):
        args, kwargs = self.respond.await_args
        return args[0] if args else kwargs.get("content"), kwargs
