"""
Guild repository backed by JSON files on local disk.

Each guild lives in ``<root>/<guild id>.json``. A checkout opens the file for
reading and writing and takes a non-blocking exclusive ``fcntl.flock`` on it.
The lock belongs to the open file, so a second open of the same path (from
this process or any other) fails to lock until the first handle is closed,
and the OS drops it by itself if the process dies.

Files are never created here. A guild without a file is reported as not
found; provisioning happens outside the bot.

All blocking file work runs in a worker thread through ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import fcntl
import os
from pathlib import Path

from chillbot.datatypes.checkout_datatypes import (
    CheckoutLocked,
    CheckoutNotFound,
    CheckoutResult,
    CheckoutSuccess,
    FileLockToken,
    LockToken,
)
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.repositories.borrowed_guild import BorrowedGuild
from chillbot.repositories.errors import GuildWriteConflictError
from chillbot.repositories.guild_codec import decode_guild, encode_guild
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("file_guild_repo")

DEFAULT_GUILDS_PATH = Path("./file-data/guilds")


class FileGuildRepository(GuildRepository):
    """Repository of guild records stored as one JSON file per guild."""

    def __init__(self, root: Path = DEFAULT_GUILDS_PATH, indent: int | None = None):
        """
        Args:
            root: Directory holding the guild files. Created if missing.
            indent: JSON indent used when writing; None writes compact JSON.
        """
        self.root = Path(root)
        self.indent = indent
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("[FILE GUILD REPO] Using guild directory %s", self.root.resolve())

    def get_file_path(self, guild_id: GuildID) -> Path:
        """Return the path of the file that stores a guild."""
        return self.root / f"{guild_id}.json"

    async def checkout(self, guild_id: GuildID) -> CheckoutResult:
        return await asyncio.to_thread(self._checkout_sync, guild_id)

    async def return_guild(self, record: GuildRecord, token: LockToken, commit: bool) -> None:
        match token:
            case FileLockToken():
                await asyncio.to_thread(self._return_sync, record, token, commit)
            case _:
                raise TypeError(f"FileGuildRepository cannot return a {type(token).__name__}")

    # -------- Blocking helpers (run in a worker thread) --------

    def _checkout_sync(self, guild_id: GuildID) -> CheckoutResult:
        path = self.get_file_path(guild_id)

        try:
            # r+b opens read/write without ever creating the file
            handle = open(path, "r+b")
        except FileNotFoundError:
            logger.debug("[FILE GUILD REPO] No record for guild %s", guild_id)
            return CheckoutNotFound(guild_id)

        try:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                handle.close()
                logger.debug("[FILE GUILD REPO] Guild %s is locked", guild_id)
                return CheckoutLocked(guild_id)

            # The file may have been deleted between open() and flock()
            if os.fstat(handle.fileno()).st_nlink == 0:
                handle.close()
                logger.debug("[FILE GUILD REPO] Guild %s was removed while locking", guild_id)
                return CheckoutNotFound(guild_id)

            record = decode_guild(guild_id, handle.read())
        except BaseException:
            handle.close()
            raise

        logger.debug("[FILE GUILD REPO] Checked out guild %s", guild_id)
        token = FileLockToken(path=path, handle=handle)
        return CheckoutSuccess(BorrowedGuild(record, token, self.return_guild))

    def _return_sync(self, record: GuildRecord, token: FileLockToken, commit: bool) -> None:
        handle = token.handle
        try:
            if commit:
                if os.fstat(handle.fileno()).st_nlink == 0:
                    raise GuildWriteConflictError(
                        f"Guild file {token.path} was removed while checked out; changes were not saved",
                        record.guild_id,
                    )

                payload = encode_guild(record, indent=self.indent)
                handle.seek(0)
                handle.write(payload)
                handle.truncate()
                handle.flush()
                os.fsync(handle.fileno())
                logger.debug("[FILE GUILD REPO] Wrote guild %s (%d bytes)", record.guild_id, len(payload))
        finally:
            # Closing the handle drops the flock
            handle.close()
