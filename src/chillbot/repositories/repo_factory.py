"""Builds the configured guild repository backend."""

from __future__ import annotations

from enum import Enum

from chillbot.configuration.app_configuration import AppConfig
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("repo_factory")


class GuildRepositoryType(Enum):
    FILE = "file"
    AZURE_BLOB = "azure_blob"


def build_guild_repository(app_config: AppConfig) -> GuildRepository:
    """
    Create the repository selected by ``guild_repository.type``.

    Raises:
        ValueError: If the type is unknown, or the Azure backend is selected
            without a connection string.
    """
    try:
        repository_type = GuildRepositoryType(app_config.guild_repository_type)
    except ValueError:
        raise ValueError(
            f"Unknown guild repository type {app_config.guild_repository_type!r}; "
            f"expected one of {[t.value for t in GuildRepositoryType]}"
        ) from None

    match repository_type:
        case GuildRepositoryType.FILE:
            from chillbot.repositories.file_guild_repo import FileGuildRepository

            logger.info("[REPO FACTORY] Using file guild repository at %s", app_config.file_repository_path)
            return FileGuildRepository(app_config.file_repository_path)

        case GuildRepositoryType.AZURE_BLOB:
            from chillbot.repositories.blob_guild_repo import AzureBlobGuildRepository

            connection_string = app_config.azure_blob_connection_string
            if not connection_string:
                raise ValueError(
                    "guild_repository.type is azure_blob but no connection string is configured; "
                    "set CHILLBOT_BLOB_CONNECTION_STRING"
                )
            logger.info("[REPO FACTORY] Using Azure Blob guild repository, container %s", app_config.azure_blob_container)
            return AzureBlobGuildRepository.from_connection_string(
                connection_string,
                app_config.azure_blob_container,
                lease_duration=app_config.azure_blob_lease_seconds,
            )
