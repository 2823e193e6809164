"""Exceptions raised by the guild repositories.

``NotFound`` and ``Locked`` are ordinary checkout results and never appear
here. These exceptions cover the cases a caller cannot recover from inside
the repository.
"""

from __future__ import annotations

from typing import Optional

from chillbot.datatypes.discord_datatypes import GuildID


class GuildRepositoryError(Exception):
    """Base exception for guild repository failures."""

    def __init__(self, message: str, guild_id: Optional[GuildID] = None):
        super().__init__(message)
        self.guild_id = guild_id


class GuildRecordFormatError(GuildRepositoryError, ValueError):
    """Stored guild bytes do not decode into a valid record."""

    def __init__(self, message: str, guild_id: Optional[GuildID] = None, field_name: Optional[str] = None):
        super().__init__(message, guild_id)
        self.field_name = field_name


class GuildWriteConflictError(GuildRepositoryError):
    """The lock or lease was lost before a commit could be written.

    The write was not applied; the persisted record still holds whatever it
    held before.
    """


class GuildAlreadyReturnedError(GuildRepositoryError, RuntimeError):
    """A borrowed guild was released a second time."""
