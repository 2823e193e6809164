"""Role-based permission checks for opt-in channel management."""

from __future__ import annotations

from typing import Iterable

import discord

from chillbot.datatypes.discord_datatypes import RoleID


def has_permission(user_roles: Iterable[RoleID], allowed_roles: Iterable[RoleID]) -> bool:
    """Return True when the user holds at least one of the allowed roles."""
    return not set(allowed_roles).isdisjoint(user_roles)


def member_role_ids(member: discord.Member) -> set[RoleID]:
    """Return the role ids held by a guild member."""
    return {RoleID(role.id) for role in member.roles}
