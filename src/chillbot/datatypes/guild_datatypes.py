"""Per-guild configuration record read and written by the guild repositories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set

from chillbot.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


@dataclass(slots=True)
class GuildRecord:
    """
    Data needed to run the bot in a guild.

    Every field is optional. An empty role set or a ``None`` channel means the
    matching feature is switched off for the guild, never that the record is
    broken. The guild id is not part of the stored payload; it comes from the
    storage key the record was loaded from.
    """

    guild_id: GuildID
    # Roles allowed to create opt-in channels
    optin_creators_roles: Set[RoleID] = field(default_factory=set)
    # Roles allowed to rename or redescribe opt-in channels
    optin_updaters_roles: Set[RoleID] = field(default_factory=set)
    # Category that holds the opt-in channels; None disables opt-ins
    optin_parent_category: Optional[ChannelID] = None
    welcome_channel: Optional[ChannelID] = None
    announcement_channel: Optional[ChannelID] = None
