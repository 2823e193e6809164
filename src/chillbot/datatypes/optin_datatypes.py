"""Result types for opt-in channel operations and the opt-in channel cache."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Tuple, Union

from chillbot.datatypes.discord_datatypes import ChannelID, GuildID


@dataclass(frozen=True, slots=True)
class NameDescription:
    """Name and topic of one opt-in channel."""

    name: str
    description: str = ""


class CreateResult(Enum):
    SUCCESS = auto()
    NO_OPTIN_CATEGORY = auto()
    NO_PERMISSIONS = auto()
    CHANNEL_NAME_USED = auto()


class RenameResult(Enum):
    SUCCESS = auto()
    NO_OPTIN_CATEGORY = auto()
    NO_PERMISSIONS = auto()
    NO_SUCH_CHANNEL = auto()
    NEW_CHANNEL_NAME_USED = auto()


class UpdateDescriptionResult(Enum):
    SUCCESS = auto()
    NO_OPTIN_CATEGORY = auto()
    NO_PERMISSIONS = auto()
    NO_SUCH_CHANNEL = auto()


class MembershipResult(Enum):
    """Result of joining or leaving an opt-in channel."""

    SUCCESS = auto()
    NO_SUCH_CHANNEL = auto()
    NO_OPTIN_CATEGORY = auto()
    ROLE_MISSING = auto()


@dataclass(frozen=True, slots=True)
class CreateOutcome:
    result: CreateResult
    # Set only on SUCCESS
    channel_id: Optional[ChannelID] = None


@dataclass(frozen=True, slots=True)
class RenameOutcome:
    result: RenameResult
    # Set only on SUCCESS
    channel_id: Optional[ChannelID] = None


# -------------------- Listing results --------------------

@dataclass(frozen=True, slots=True)
class OptinChannelsListed:
    """The opt-in channels of a guild, in category order. May be empty."""

    names_descriptions: Tuple[NameDescription, ...]


@dataclass(frozen=True, slots=True)
class OptinNoCategory:
    """The guild has no usable opt-in category."""

    guild_id: GuildID


@dataclass(frozen=True, slots=True)
class OptinGuildNotFound:
    """No record is stored for the guild."""

    guild_id: GuildID


@dataclass(frozen=True, slots=True)
class OptinGuildLocked:
    """The guild record was checked out by someone else."""

    guild_id: GuildID


OptinListResult = Union[OptinChannelsListed, OptinNoCategory]
OptinCacheResult = Union[OptinChannelsListed, OptinNoCategory, OptinGuildNotFound, OptinGuildLocked]
