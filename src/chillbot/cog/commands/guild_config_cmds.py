"""
Guild configuration cog: server-admin commands that edit the guild record.

This cog exposes three slash commands:
- /configure-optins: set the opt-in category and the creator/updater roles
- /configure-welcome: set or clear the welcome channel
- /configure-announcements: set or clear the announcement channel

All commands require the Manage Server permission and only edit a record
that already exists; records are provisioned outside the bot.
"""

from __future__ import annotations

from typing import Callable

import discord
from discord import Option
from discord.ext import commands

from chillbot.cache.optin_channel_cache import OptinChannelCacheManager
from chillbot.datatypes.checkout_datatypes import CheckoutLocked, CheckoutNotFound, CheckoutSuccess
from chillbot.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.repositories.errors import GuildWriteConflictError
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("guild_config_commands")

# Admin edits are rare, so they may wait a little for a busy record
CONFIG_CHECKOUT_TIMEOUT_SECONDS = 5.0

NOT_CONFIGURED = "This server has not been configured for Chill Bot yet."
TRY_AGAIN = "Please try again."
NOT_SAVED = "Your change was not saved because the server settings were busy. Please try again."
SOMETHING_WENT_WRONG = "Something went wrong trying to do this for you. File a bug report with Chill Bot."


class GuildConfigCog(commands.Cog):
    """Server-admin commands that edit the guild record."""

    def __init__(self, bot: discord.Bot, repository: GuildRepository, optin_cache: OptinChannelCacheManager):
        self.bot = bot
        self.repository = repository
        self.optin_cache = optin_cache
        logger.info("[GUILD CONFIG CMDS] Guild config cog loaded")

    def _has_manage_permission(self, ctx: discord.ApplicationContext) -> bool:
        if not isinstance(ctx.user, discord.Member):
            return False
        return ctx.user.guild_permissions.manage_guild

    async def _check_permissions(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        if not self._has_manage_permission(ctx):
            await ctx.respond("You need Manage Server permission.", ephemeral=True)
            return False
        return True

    async def _update_record(
        self,
        ctx: discord.ApplicationContext,
        mutate: Callable[[GuildRecord], None],
        success_message: str,
    ) -> None:
        """Apply ``mutate`` to the checked-out record, commit it and reply."""
        guild_id = GuildID(ctx.guild_id)
        try:
            match await self.repository.wait_for_checkout(guild_id, CONFIG_CHECKOUT_TIMEOUT_SECONDS):
                case CheckoutSuccess(borrowed=borrowed):
                    async with borrowed:
                        mutate(borrowed.instance)

                    self.optin_cache.clear_cache(guild_id)
                    logger.info("[GUILD CONFIG CMDS] Updated configuration of guild %s", guild_id)
                    await ctx.respond(success_message, ephemeral=True)

                case CheckoutNotFound():
                    await ctx.respond(NOT_CONFIGURED, ephemeral=True)

                case CheckoutLocked():
                    await ctx.respond(TRY_AGAIN, ephemeral=True)

        except GuildWriteConflictError:
            logger.warning("[GUILD CONFIG CMDS] Lost the lock on guild %s before saving", guild_id)
            await ctx.respond(NOT_SAVED, ephemeral=True)
        except Exception:
            logger.exception("[GUILD CONFIG CMDS] Configuration change in guild %s dropped", guild_id)
            await ctx.respond(SOMETHING_WENT_WRONG, ephemeral=True)

    @commands.slash_command(
        name="configure-optins",
        description="Set the opt-in channel category and who may manage opt-in channels.",
    )
    async def configure_optins(
        self,
        ctx: discord.ApplicationContext,
        category: Option(discord.CategoryChannel, "Category that holds the opt-in channels"),  # type: ignore
        creator_role: Option(discord.Role, "Role allowed to create opt-in channels", required=False, default=None),  # type: ignore
        updater_role: Option(discord.Role, "Role allowed to rename and redescribe opt-in channels", required=False, default=None),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        def mutate(record: GuildRecord) -> None:
            record.optin_parent_category = ChannelID(category.id)
            if creator_role is not None:
                record.optin_creators_roles.add(RoleID(creator_role.id))
            if updater_role is not None:
                record.optin_updaters_roles.add(RoleID(updater_role.id))

        await self._update_record(ctx, mutate, f"Opt-in channels will be created under **{category.name}**.")

    @commands.slash_command(
        name="configure-welcome",
        description="Set the channel new members are welcomed in. Leave empty to turn welcomes off.",
    )
    async def configure_welcome(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.TextChannel, "Welcome channel", required=False, default=None),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        def mutate(record: GuildRecord) -> None:
            record.welcome_channel = ChannelID(channel.id) if channel is not None else None

        message = f"New members will be welcomed in {channel.mention}." if channel is not None else "Welcome messages turned off."
        await self._update_record(ctx, mutate, message)

    @commands.slash_command(
        name="configure-announcements",
        description="Set the channel opt-in changes are announced in. Leave empty to turn announcements off.",
    )
    async def configure_announcements(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.TextChannel, "Announcement channel", required=False, default=None),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        def mutate(record: GuildRecord) -> None:
            record.announcement_channel = ChannelID(channel.id) if channel is not None else None

        message = (
            f"Opt-in changes will be announced in {channel.mention}." if channel is not None else "Announcements turned off."
        )
        await self._update_record(ctx, mutate, message)


def setup(bot: discord.Bot, repository: GuildRepository, optin_cache: OptinChannelCacheManager) -> None:
    bot.add_cog(GuildConfigCog(bot, repository, optin_cache))
