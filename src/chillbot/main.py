"""
Chill Bot
=========

A Discord bot that manages opt-in channels: hidden channels any member can
discover with /list and join with /join, plus a welcome message that shows
new members what they can join.

This module is the composition root. The guild repository, the opt-in
channel cache and the welcome engine are built once here and handed to the
cogs that need them.
"""

import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import discord
from dotenv import load_dotenv

from chillbot.cache.guild_cache import GuildMemoryCache
from chillbot.cache.optin_channel_cache import OptinChannelCacheManager
from chillbot.configuration.app_configuration import AppConfig
from chillbot.engines.welcome_message_engine import WelcomeMessageEngine
from chillbot.optin import announce
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.repositories.repo_factory import build_guild_repository
from chillbot.util.logger import get_logger, handle_exception

logger = get_logger("main")


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. CHILLBOT_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("CHILLBOT_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()


@dataclass(slots=True)
class BotServices:
    """Long-lived collaborators shared by the cogs."""

    repository: GuildRepository
    optin_cache: OptinChannelCacheManager
    welcome_engine: WelcomeMessageEngine


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the Discord intents Chill Bot needs (guilds and member joins)."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def build_services(app_config: AppConfig) -> BotServices:
    """Build the repository, the opt-in channel cache and the welcome engine."""
    repository = build_guild_repository(app_config)
    optin_cache = OptinChannelCacheManager(
        repository,
        GuildMemoryCache(default_ttl=app_config.optin_channel_cache_lifetime),
        lifetime=app_config.optin_channel_cache_lifetime,
    )
    welcome_engine = WelcomeMessageEngine(repository, app_config.user_join_locked_guild_timeout)
    return BotServices(repository=repository, optin_cache=optin_cache, welcome_engine=welcome_engine)


def load_cogs(discord_bot_instance: discord.Bot, services: BotServices) -> None:
    """Register all cogs with the provided Discord bot instance."""
    from chillbot.cog.commands import guild_config_cmds, optin_cmds
    from chillbot.cog.listener import events_listener

    events_listener.setup(discord_bot_instance, services.welcome_engine)
    optin_cmds.setup(discord_bot_instance, services.repository, services.optin_cache)
    guild_config_cmds.setup(discord_bot_instance, services.repository, services.optin_cache)

    logger.info("All cogs loaded successfully.")


def create_bot(services: BotServices) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, services)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, services: BotServices) -> None:
    """Close the bot, flush pending announcements and close the repository."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord bot: %s", exc)

    await announce.wait_for_pending_announcements()

    try:
        await services.repository.close()
    except Exception as exc:
        logger.exception("Error during guild repository shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the services and the bot, returning an exit code."""
    token = load_environment()
    app_config = AppConfig(BASE_DIR / "config" / "app_config.yml")

    try:
        services = build_services(app_config)
    except Exception as exc:
        logger.critical("Failed to initialize guild repository: %s", exc)
        return 1

    bot = None
    exit_code = 0
    try:
        bot = create_bot(services)
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, services)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    os.chdir(BASE_DIR)
    sys.excepthook = handle_exception
    logger.info("Starting Chill Bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
