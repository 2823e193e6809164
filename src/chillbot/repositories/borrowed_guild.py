"""
Scoped ownership of a checked-out guild record.

A :class:`BorrowedGuild` is handed out by a successful checkout. While it is
held, the backend lock (file lock or blob lease) keeps every other caller out
of the record. Releasing it hands the record back to the repository, which
writes it when ``commit`` is true and then drops the lock.

Use it as an async context manager so the release happens on every exit
path::

    async with borrowed:
        borrowed.commit = False      # read-only use
        record = borrowed.instance

If the ``async with`` body raises, the changes are discarded and the lock is
still released before the exception propagates.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from chillbot.datatypes.checkout_datatypes import LockToken
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.repositories.errors import GuildAlreadyReturnedError
from chillbot.util.logger import get_logger

logger = get_logger("borrowed_guild")

ReturnCallback = Callable[[GuildRecord, LockToken, bool], Awaitable[None]]


class BorrowedGuild:
    """
    A guild record that has been checked out and must be returned.

    Attributes:
        instance: The decoded record. Mutate it freely while borrowed.
        commit: Whether changes are written back on release (default True).
    """

    __slots__ = ("instance", "commit", "_token", "_on_return", "_returned")

    def __init__(self, instance: GuildRecord, token: LockToken, on_return: ReturnCallback):
        self.instance = instance
        self.commit = True
        self._token = token
        self._on_return = on_return
        self._returned = False

    @property
    def token(self) -> LockToken:
        return self._token

    @property
    def returned(self) -> bool:
        """True once :meth:`release` has been called."""
        return self._returned

    async def release(self) -> None:
        """
        Return the record to its repository.

        The handle counts as returned as soon as this is called, even when the
        write or the unlock then fails, so a failing release is never retried
        against a lock that may already belong to someone else.

        Raises:
            GuildAlreadyReturnedError: If the handle was already released.
            GuildWriteConflictError: If ``commit`` is set and the lock was lost.
        """
        if self._returned:
            raise GuildAlreadyReturnedError(
                f"Guild {self.instance.guild_id} was already returned",
                self.instance.guild_id,
            )
        self._returned = True
        await self._on_return(self.instance, self._token, self.commit)

    async def __aenter__(self) -> "BorrowedGuild":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and self.commit:
            logger.debug(
                "[BORROWED GUILD] Discarding changes to guild %s after %s",
                self.instance.guild_id,
                exc_type.__name__,
            )
            self.commit = False
        await self.release()

    def __repr__(self) -> str:
        return f"BorrowedGuild(guild_id={self.instance.guild_id!r}, commit={self.commit}, returned={self._returned})"
