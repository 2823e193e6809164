"""
Guild repository backed by Azure Blob Storage.

Each guild is the blob ``<guild id>.json`` inside one container. A checkout
acquires a fixed-length lease on the blob; while the lease is held the
storage service rejects a second lease with ``409 LeaseAlreadyPresent``,
which is reported as :class:`CheckoutLocked`.

Leases expire on their own, so a crashed holder blocks the guild for at most
one lease period. The flip side is that a slow holder can outlive its lease.
Commit policy for that case: a commit is refused with
:class:`GuildWriteConflictError` when the local lease clock says the lease
has (nearly) run out, and any lease conflict reported by the service on the
write is mapped to the same error. Writes always carry the lease id, so the
service never applies a write from a holder that lost the blob to someone
else.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from azure.core.exceptions import HttpResponseError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob.aio import ContainerClient

from chillbot.datatypes.checkout_datatypes import (
    BlobLeaseToken,
    CheckoutLocked,
    CheckoutNotFound,
    CheckoutResult,
    CheckoutSuccess,
    LockToken,
)
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.repositories.borrowed_guild import BorrowedGuild
from chillbot.repositories.errors import GuildWriteConflictError
from chillbot.repositories.guild_codec import decode_guild, encode_guild
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("blob_guild_repo")

NOT_FOUND_STATUS = 404
CONFLICT_STATUS = 409
PRECONDITION_FAILED_STATUS = 412
LEASE_ALREADY_PRESENT = "LeaseAlreadyPresent"

# Azure accepts fixed leases between 15 and 60 seconds
DEFAULT_LEASE_DURATION_SECONDS = 30
MIN_LEASE_DURATION_SECONDS = 15
MAX_LEASE_DURATION_SECONDS = 60

# Commits are refused this close to lease expiry
LEASE_SAFETY_MARGIN_SECONDS = 1.0


def _error_code(exc: HttpResponseError) -> str:
    return getattr(exc, "error_code", None) or ""


def _is_lease_conflict(exc: HttpResponseError) -> bool:
    return exc.status_code in (CONFLICT_STATUS, PRECONDITION_FAILED_STATUS)


class AzureBlobGuildRepository(GuildRepository):
    """Repository of guild records stored as blobs leased on checkout."""

    def __init__(
        self,
        container_client: ContainerClient,
        lease_duration: int = DEFAULT_LEASE_DURATION_SECONDS,
        indent: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            container_client: Async client for the container holding guild blobs.
            lease_duration: Lease length in seconds (15-60).
            indent: JSON indent used when writing; None writes compact JSON.
            clock: Monotonic time source used to track lease age.
        """
        if not MIN_LEASE_DURATION_SECONDS <= lease_duration <= MAX_LEASE_DURATION_SECONDS:
            raise ValueError(
                f"lease_duration must be between {MIN_LEASE_DURATION_SECONDS} and "
                f"{MAX_LEASE_DURATION_SECONDS} seconds, got {lease_duration}"
            )
        self.container_client = container_client
        self.lease_duration = lease_duration
        self.indent = indent
        self._clock = clock

    @classmethod
    def from_connection_string(
        cls,
        connection_string: str,
        container_name: str,
        lease_duration: int = DEFAULT_LEASE_DURATION_SECONDS,
    ) -> "AzureBlobGuildRepository":
        """Build a repository from a storage connection string and container name."""
        if not connection_string or not connection_string.strip():
            raise ValueError("connection_string must not be empty")
        if not container_name or not container_name.strip():
            raise ValueError("container_name must not be empty")

        container_client = ContainerClient.from_connection_string(connection_string, container_name)
        return cls(container_client, lease_duration=lease_duration)

    @staticmethod
    def get_blob_name(guild_id: GuildID) -> str:
        """Return the name of the blob that stores a guild."""
        return f"{guild_id}.json"

    async def ensure_container(self) -> None:
        """Create the container if it does not exist yet."""
        try:
            await self.container_client.create_container()
            logger.info("[BLOB GUILD REPO] Created container %s", self.container_client.container_name)
        except ResourceExistsError:
            pass

    async def close(self) -> None:
        await self.container_client.close()
        logger.info("[BLOB GUILD REPO] Container client closed")

    async def checkout(self, guild_id: GuildID) -> CheckoutResult:
        blob_name = self.get_blob_name(guild_id)
        blob_client = self.container_client.get_blob_client(blob_name)

        try:
            lease = await blob_client.acquire_lease(lease_duration=self.lease_duration)
        except ResourceNotFoundError:
            logger.debug("[BLOB GUILD REPO] No record for guild %s", guild_id)
            return CheckoutNotFound(guild_id)
        except HttpResponseError as exc:
            if exc.status_code == NOT_FOUND_STATUS:
                return CheckoutNotFound(guild_id)
            if exc.status_code == CONFLICT_STATUS and _error_code(exc).lower() == LEASE_ALREADY_PRESENT.lower():
                logger.debug("[BLOB GUILD REPO] Guild %s is leased by another holder", guild_id)
                return CheckoutLocked(guild_id)
            raise
        acquired_at = self._clock()

        try:
            downloader = await blob_client.download_blob(lease=lease)
            payload = await downloader.readall()
            record = decode_guild(guild_id, payload)
        except BaseException:
            try:
                await lease.release()
            except Exception:
                logger.exception("[BLOB GUILD REPO] Failed to release lease on %s after a failed read", blob_name)
            raise

        logger.debug("[BLOB GUILD REPO] Checked out guild %s (lease %s)", guild_id, lease.id)
        token = BlobLeaseToken(blob_name=blob_name, lease=lease, acquired_at=acquired_at)
        return CheckoutSuccess(BorrowedGuild(record, token, self.return_guild))

    async def return_guild(self, record: GuildRecord, token: LockToken, commit: bool) -> None:
        match token:
            case BlobLeaseToken():
                pass
            case _:
                raise TypeError(f"AzureBlobGuildRepository cannot return a {type(token).__name__}")

        try:
            if commit:
                await self._write_under_lease(record, token)
        finally:
            await self._release_lease(token)

    async def _write_under_lease(self, record: GuildRecord, token: BlobLeaseToken) -> None:
        held_for = self._clock() - token.acquired_at
        if held_for >= self.lease_duration - LEASE_SAFETY_MARGIN_SECONDS:
            raise GuildWriteConflictError(
                f"Lease on {token.blob_name} expired after {held_for:.1f}s; changes were not saved",
                record.guild_id,
            )

        blob_client = self.container_client.get_blob_client(token.blob_name)
        payload = encode_guild(record, indent=self.indent)
        try:
            await blob_client.upload_blob(payload, overwrite=True, lease=token.lease)
        except HttpResponseError as exc:
            if _is_lease_conflict(exc):
                raise GuildWriteConflictError(
                    f"Lease on {token.blob_name} was lost before the write ({_error_code(exc)}); changes were not saved",
                    record.guild_id,
                ) from exc
            raise
        logger.debug("[BLOB GUILD REPO] Wrote guild %s (%d bytes)", record.guild_id, len(payload))

    async def _release_lease(self, token: BlobLeaseToken) -> None:
        try:
            await token.lease.release()
        except HttpResponseError as exc:
            if not _is_lease_conflict(exc):
                raise
            # Lease already expired or taken over; nothing left to release
            logger.warning(
                "[BLOB GUILD REPO] Lease on %s was already gone at release (%s)",
                token.blob_name,
                _error_code(exc),
            )
