from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict, Optional
import yaml

from chillbot.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

BLOB_CONNECTION_STRING_ENV = "CHILLBOT_BLOB_CONNECTION_STRING"

DEFAULT_GUILDS_PATH = "./file-data/guilds"
DEFAULT_BLOB_CONTAINER = "guilds"
DEFAULT_LEASE_SECONDS = 30
DEFAULT_OPTIN_CACHE_LIFETIME_MINUTES = 60.0
DEFAULT_LOCKED_GUILD_TIMEOUT_SECONDS = 60.0


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    typed shortcuts for the guild repository, the opt-in channel cache and
    the welcome engine. Uses fcntl file locks for safe concurrent access
    across processes.
    """

    def __init__(self, config_path: Path = CONFIG_PATH) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Acquire a shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)

                # Release the lock
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    if data is not None:
                        logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, *keys: str) -> Dict[str, Any]:
        node: Any = self._data
        for key in keys:
            if not isinstance(node, dict):
                return {}
            node = node.get(key, {})
        return node if isinstance(node, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (which will be an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def guild_repository_type(self) -> str:
        """Return the configured repository backend name, lower-cased. Defaults to ``file``."""
        value = self._section("guild_repository").get("type") or "file"
        return str(value).strip().lower()

    @property
    def file_repository_path(self) -> Path:
        """Return the directory that holds one JSON file per guild."""
        value = self._section("guild_repository", "file").get("path") or DEFAULT_GUILDS_PATH
        return Path(str(value))

    @property
    def azure_blob_connection_string(self) -> Optional[str]:
        """Return the storage connection string.

        The ``CHILLBOT_BLOB_CONNECTION_STRING`` environment variable wins over
        the YAML value so the secret can stay out of the config file.
        """
        value = os.getenv(BLOB_CONNECTION_STRING_ENV) or self._section("guild_repository", "azure_blob").get(
            "connection_string"
        )
        return str(value) if value else None

    @property
    def azure_blob_container(self) -> str:
        value = self._section("guild_repository", "azure_blob").get("container") or DEFAULT_BLOB_CONTAINER
        return str(value)

    @property
    def azure_blob_lease_seconds(self) -> int:
        value = self._section("guild_repository", "azure_blob").get("lease_seconds", DEFAULT_LEASE_SECONDS)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid lease_seconds %r; using %d", value, DEFAULT_LEASE_SECONDS)
            return DEFAULT_LEASE_SECONDS

    @property
    def optin_channel_cache_lifetime(self) -> float:
        """Return how long an opt-in channel listing stays cached, in seconds.

        Configured in minutes under ``optin_channel_cache.lifetime_minutes``.
        Default is 60 minutes.
        """
        value = self._section("optin_channel_cache").get("lifetime_minutes", DEFAULT_OPTIN_CACHE_LIFETIME_MINUTES)
        try:
            return float(value) * 60.0
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid lifetime_minutes %r; using default", value)
            return DEFAULT_OPTIN_CACHE_LIFETIME_MINUTES * 60.0

    @property
    def user_join_locked_guild_timeout(self) -> float:
        """Return how long the welcome engine waits for a locked guild, in seconds."""
        value = self._section("welcome").get("locked_guild_timeout_seconds", DEFAULT_LOCKED_GUILD_TIMEOUT_SECONDS)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid locked_guild_timeout_seconds %r; using default", value)
            return DEFAULT_LOCKED_GUILD_TIMEOUT_SECONDS
