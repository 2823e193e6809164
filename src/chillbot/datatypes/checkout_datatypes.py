"""
Result and lock-token types for guild checkouts.

A checkout produces exactly one of three results:

- :class:`CheckoutSuccess` carries the :class:`~chillbot.repositories.borrowed_guild.BorrowedGuild`
  the caller now owns and must release.
- :class:`CheckoutNotFound` means no record is stored for the guild.
- :class:`CheckoutLocked` means another holder has the record right now.

Callers dispatch with ``match``::

    match await repository.checkout(guild_id):
        case CheckoutSuccess(borrowed=borrowed):
            async with borrowed:
                ...
        case CheckoutNotFound():
            ...
        case CheckoutLocked():
            ...

The lock token is the backend's proof of ownership. Each backend only
accepts its own token variant when a borrowed guild is returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Union

from chillbot.datatypes.discord_datatypes import GuildID

if TYPE_CHECKING:
    from azure.storage.blob.aio import BlobLeaseClient

    from chillbot.repositories.borrowed_guild import BorrowedGuild


# -------------------- Lock tokens --------------------

@dataclass(frozen=True, slots=True)
class FileLockToken:
    """Open, flock-ed handle on a guild file. The lock lives as long as the handle."""

    path: Path
    handle: BinaryIO


@dataclass(frozen=True, slots=True)
class BlobLeaseToken:
    """Lease on a guild blob, with the monotonic time it was acquired at."""

    blob_name: str
    lease: "BlobLeaseClient"
    acquired_at: float


LockToken = Union[FileLockToken, BlobLeaseToken]


# -------------------- Checkout results --------------------

@dataclass(frozen=True, slots=True)
class CheckoutSuccess:
    """The guild was checked out; ``borrowed`` must be released exactly once."""

    borrowed: "BorrowedGuild"


@dataclass(frozen=True, slots=True)
class CheckoutNotFound:
    """No record is stored for ``guild_id``."""

    guild_id: GuildID


@dataclass(frozen=True, slots=True)
class CheckoutLocked:
    """The record for ``guild_id`` is checked out by someone else."""

    guild_id: GuildID


CheckoutResult = Union[CheckoutSuccess, CheckoutNotFound, CheckoutLocked]
