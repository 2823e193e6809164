from pathlib import Path

import pytest

from chillbot.configuration.app_configuration import BLOB_CONNECTION_STRING_ENV, AppConfig
from chillbot.repositories.blob_guild_repo import AzureBlobGuildRepository
from chillbot.repositories.file_guild_repo import FileGuildRepository
from chillbot.repositories.repo_factory import build_guild_repository


@pytest.fixture(autouse=True)
def no_connection_string_env(monkeypatch):
    monkeypatch.delenv(BLOB_CONNECTION_STRING_ENV, raising=False)


def write_config(tmp_path: Path, text: str) -> AppConfig:
    path = tmp_path / "app_config.yml"
    path.write_text(text, encoding="utf-8")
    return AppConfig(path)


def test_file_backend(tmp_path: Path) -> None:
    guilds = tmp_path / "guilds"
    config = write_config(tmp_path, f"guild_repository:\n  type: file\n  file:\n    path: {guilds}\n")

    repository = build_guild_repository(config)

    assert isinstance(repository, FileGuildRepository)
    assert repository.root == guilds
    assert guilds.is_dir()


def test_unknown_backend(tmp_path: Path) -> None:
    config = write_config(tmp_path, "guild_repository:\n  type: sqlite\n")

    with pytest.raises(ValueError, match="sqlite"):
        build_guild_repository(config)


def test_blob_backend_requires_connection_string(tmp_path: Path) -> None:
    config = write_config(tmp_path, "guild_repository:\n  type: azure_blob\n")

    with pytest.raises(ValueError, match=BLOB_CONNECTION_STRING_ENV):
        build_guild_repository(config)


@pytest.mark.asyncio
async def test_blob_backend_from_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(BLOB_CONNECTION_STRING_ENV, "UseDevelopmentStorage=true")
    config = write_config(
        tmp_path,
        "guild_repository:\n  type: azure_blob\n  azure_blob:\n    container: chill\n    lease_seconds: 20\n",
    )

    repository = build_guild_repository(config)
    try:
        assert isinstance(repository, AzureBlobGuildRepository)
        assert repository.lease_duration == 20
        assert repository.container_client.container_name == "chill"
    finally:
        await repository.close()
