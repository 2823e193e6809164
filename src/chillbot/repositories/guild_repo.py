"""
Abstract guild repository.

A repository stores one :class:`GuildRecord` per guild and lends it out under
an exclusive, fail-fast lock: a second checkout of the same guild while the
first is outstanding gets :class:`CheckoutLocked` right away instead of
waiting. Backends differ only in what the lock is (an OS file lock or a
storage lease); callers see the same results either way.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod

from chillbot.datatypes.checkout_datatypes import CheckoutLocked, CheckoutResult, LockToken
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.util.logger import get_logger

logger = get_logger("guild_repository")

# Backoff used by wait_for_checkout
INITIAL_RETRY_DELAY_SECONDS: float = 0.001
RETRY_BACKOFF_FACTOR: float = 1.5


class GuildRepository(ABC):
    """Repository of guild records that are checked out and returned."""

    @abstractmethod
    async def checkout(self, guild_id: GuildID) -> CheckoutResult:
        """
        Try once to check out the record for ``guild_id``.

        Returns:
            CheckoutResult: ``CheckoutSuccess`` holding the borrowed record,
            ``CheckoutNotFound`` when no record exists, or ``CheckoutLocked``
            when another holder has it.

        Raises:
            GuildRecordFormatError: If the stored bytes are malformed.
            OSError, azure.core.exceptions.HttpResponseError: Backend failures
                other than not-found and locked, passed through unchanged.
        """

    @abstractmethod
    async def return_guild(self, record: GuildRecord, token: LockToken, commit: bool) -> None:
        """
        Take back a borrowed record, writing it first when ``commit`` is true.

        The lock is released whether or not the write succeeds.

        Raises:
            GuildWriteConflictError: If ``commit`` is true and the lock was
                lost before the write; nothing is written in that case.
            TypeError: If ``token`` belongs to a different backend.
        """

    async def wait_for_checkout(self, guild_id: GuildID, max_wait: float) -> CheckoutResult:
        """
        Keep trying to check out a guild until it is not locked or ``max_wait`` runs out.

        The delay between attempts starts at one millisecond and grows by half
        after every attempt. A retry is only made when it would still start
        inside ``max_wait``; otherwise the last ``CheckoutLocked`` is returned
        and the caller must treat it as giving up. ``max_wait`` of zero makes
        this a single :meth:`checkout`.

        Args:
            guild_id: Guild to check out.
            max_wait: Maximum number of seconds to spend waiting.
        """
        started = time.monotonic()
        next_delay = INITIAL_RETRY_DELAY_SECONDS
        attempts = 1

        result = await self.checkout(guild_id)
        while isinstance(result, CheckoutLocked) and (time.monotonic() - started) + next_delay < max_wait:
            await asyncio.sleep(next_delay)
            result = await self.checkout(guild_id)
            next_delay *= RETRY_BACKOFF_FACTOR
            attempts += 1

        if isinstance(result, CheckoutLocked) and attempts > 1:
            logger.debug(
                "[GUILD REPOSITORY] Gave up on locked guild %s after %d attempts (%.3fs)",
                guild_id,
                attempts,
                time.monotonic() - started,
            )
        return result

    async def close(self) -> None:
        """Release backend resources. The default has nothing to release."""
