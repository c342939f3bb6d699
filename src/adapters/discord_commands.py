"""Command surface and interaction routing for discord.py.

Slash commands cover profiles, matching and the privacy notice. Button clicks
are routed by custom id in a single on_interaction listener so that controls
sent before a restart keep working once the negotiator is rehydrated.
"""

from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from adapters.discord_mapper import build_history_message
from adapters.discord_ui import (
    PROFILE_CONFIRM,
    PROFILE_EDIT,
    PROFILE_REGEN,
    START_EDIT,
    START_MATCH,
    START_PROFILE,
    START_VIEW,
    ProfileCreateModal,
    ProfileEditModal,
    candidate_preview_embed,
    profile_actions_view,
    profile_embed,
    start_here_view,
)
from adapters.notification_formatting import START_HERE_TEXT, format_privacy_notice, parse_control_id, tone_color
from core.errors import ProfileInputError
from core.history import HistoryRecorder
from core.matchmaker import NO_CANDIDATES, NO_PROFILE, PROPOSED, Matchmaker
from core.negotiator import MatchNegotiator
from core.profiles import ProfileService

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong while handling that."
NEED_PROFILE = "You don't have a profile yet. Create one with `/profile_ai` first."


async def _reply(interaction: discord.Interaction, content: str, **kwargs) -> None:
    """Ephemeral reply that works whether or not the interaction was answered."""

    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=True, **kwargs)
    else:
        await interaction.response.send_message(content, ephemeral=True, **kwargs)


class CoffeeChatCog(commands.Cog):
    """Profiles, matching and consent controls."""

    def __init__(
        self,
        bot: commands.Bot,
        *,
        profiles: ProfileService,
        matchmaker: Matchmaker,
        negotiator: MatchNegotiator,
        recorder: HistoryRecorder,
        gateway,
        privacy_channel_ids: list[str],
        start_here_channel_id: Optional[str] = None,
    ) -> None:
        self.bot = bot
        self._profiles = profiles
        self._matchmaker = matchmaker
        self._negotiator = negotiator
        self._recorder = recorder
        self._gateway = gateway
        self._privacy_channel_ids = privacy_channel_ids
        self._start_here_channel_id = start_here_channel_id

    # -- slash commands ------------------------------------------------------

    @app_commands.command(name="privacy", description="How message history is collected and used")
    async def privacy(self, interaction: discord.Interaction) -> None:
        embed = discord.Embed(
            title="🔒 Privacy and message logging",
            color=tone_color("info"),
            description=format_privacy_notice(f"<#{cid}>" for cid in self._privacy_channel_ids),
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="match", description="Get a recommended partner and send them a proposal")
    async def match(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await _reply(interaction, "Use this command inside a server.")
            return
        await interaction.response.defer(ephemeral=True, thinking=True)

        guild_id = str(interaction.guild.id)
        result = await self._matchmaker.request_match(str(interaction.user.id), guild_id)
        if result.outcome == NO_PROFILE:
            await interaction.edit_original_response(content=NEED_PROFILE)
            return
        if result.outcome == NO_CANDIDATES:
            await interaction.edit_original_response(
                content="No candidates yet. Ask other members to create a profile with `/profile_ai`."
            )
            return

        candidate = result.candidate
        display_name = await self._gateway.display_name(guild_id, candidate.user_id)
        await interaction.edit_original_response(
            content="We sent this member a proposal by DM.",
            embed=candidate_preview_embed(candidate, display_name),
        )
        if result.outcome == PROPOSED:
            await interaction.followup.send("✅ Proposal sent. Waiting for a reply…", ephemeral=True)
        else:
            await interaction.followup.send(
                "⚠️ The candidate could not be reached by DM or the fallback channel.", ephemeral=True
            )

    @app_commands.command(name="profile_ai", description="Describe yourself and let AI draft your profile")
    async def profile_ai(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(ProfileCreateModal(self._submit_create))

    @app_commands.command(name="profile_view", description="Show my profile")
    async def profile_view(self, interaction: discord.Interaction) -> None:
        await self._show_profile(interaction)

    @app_commands.command(name="profile_edit", description="Edit my profile")
    async def profile_edit(self, interaction: discord.Interaction) -> None:
        await self._open_edit(interaction)

    @app_commands.command(name="bootstrap_start", description="Install the pinned start-here message (staff)")
    @app_commands.default_permissions(manage_guild=True)
    async def bootstrap_start(self, interaction: discord.Interaction) -> None:
        if not self._start_here_channel_id:
            await _reply(interaction, "channels.start_here is not set in config.json.")
            return
        try:
            channel = self.bot.get_channel(int(self._start_here_channel_id)) or await self.bot.fetch_channel(
                int(self._start_here_channel_id)
            )
        except discord.HTTPException:
            await _reply(interaction, "The start-here channel could not be found.")
            return

        message = await channel.send(content=START_HERE_TEXT, view=start_here_view())
        try:
            await message.pin()
        except discord.HTTPException as exc:
            LOGGER.warning("Could not pin start-here message: %s", exc)
        await _reply(interaction, "Installed.")

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        LOGGER.error("Command %s failed", getattr(interaction.command, "name", "?"), exc_info=error)
        try:
            await _reply(interaction, GENERIC_ERROR)
        except discord.HTTPException:
            LOGGER.warning("Could not deliver error reply")

    # -- profile flows -------------------------------------------------------

    async def _show_profile(self, interaction: discord.Interaction) -> None:
        profile = self._profiles.get_profile(str(interaction.user.id))
        if profile is None:
            await _reply(interaction, NEED_PROFILE)
            return
        await _reply(interaction, "Here is your current profile.", embed=profile_embed(profile, "👤 My profile"))

    async def _open_edit(self, interaction: discord.Interaction) -> None:
        profile = self._profiles.get_profile(str(interaction.user.id))
        await interaction.response.send_modal(ProfileEditModal(profile, self._submit_edit))

    async def _submit_create(self, interaction: discord.Interaction, name: str, narrative: str) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            profile = await self._profiles.create_profile(
                str(interaction.guild_id or ""), str(interaction.user.id), name, narrative
            )
        except ProfileInputError as exc:
            await interaction.edit_original_response(content=str(exc))
            return
        await interaction.edit_original_response(
            content="Here is the AI summary. Edit, confirm or regenerate it.",
            embed=profile_embed(profile, "🤖 AI profile"),
            view=profile_actions_view(),
        )

    async def _submit_edit(self, interaction: discord.Interaction, fields: dict) -> None:
        try:
            profile = self._profiles.edit_profile(
                str(interaction.guild_id or ""), str(interaction.user.id), **fields
            )
        except ProfileInputError as exc:
            await _reply(interaction, str(exc))
            return
        await _reply(
            interaction,
            "Profile updated. Confirm or regenerate it.",
            embed=profile_embed(profile, "✏️ Edited profile"),
            view=profile_actions_view(include_edit=False),
        )

    async def _handle_profile_button(self, interaction: discord.Interaction, custom_id: str) -> None:
        if custom_id in (PROFILE_EDIT, START_EDIT):
            await self._open_edit(interaction)
        elif custom_id == START_PROFILE:
            await interaction.response.send_modal(ProfileCreateModal(self._submit_create))
        elif custom_id == START_VIEW:
            await self._show_profile(interaction)
        elif custom_id == START_MATCH:
            await _reply(interaction, "Type `/match` to get a recommendation.")
        elif custom_id == PROFILE_CONFIRM:
            await interaction.response.defer()
            await _reply(interaction, "✅ Your profile is saved. Try `/match` next.")
        elif custom_id == PROFILE_REGEN:
            await interaction.response.defer()
            profile = await self._profiles.regenerate_profile(
                str(interaction.guild_id or ""), str(interaction.user.id)
            )
            if profile is None:
                await _reply(interaction, NEED_PROFILE)
                return
            await _reply(interaction, "🔄 Regenerated.", embed=profile_embed(profile, "🤖 Regenerated profile"))

    # -- consent controls ----------------------------------------------------

    async def _handle_match_control(self, interaction: discord.Interaction, match_id: str, action: str) -> None:
        await interaction.response.defer()
        result = await self._negotiator.handle_action(match_id, action, str(interaction.user.id))
        if result.accepted:
            # Remove the controls so the message cannot be clicked again.
            await interaction.edit_original_response(content=result.reply, embed=None, view=None)
        else:
            await interaction.followup.send(result.reply, ephemeral=True)

    # -- listeners -----------------------------------------------------------

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type != discord.InteractionType.component:
            return
        custom_id = (interaction.data or {}).get("custom_id", "")
        try:
            control = parse_control_id(custom_id)
            if control is not None:
                await self._handle_match_control(interaction, *control)
            elif custom_id.startswith(("profile:", "start:")):
                await self._handle_profile_button(interaction, custom_id)
        except Exception:
            LOGGER.exception("Interaction %s failed", custom_id)
            try:
                await _reply(interaction, GENERIC_ERROR)
            except discord.HTTPException:
                LOGGER.warning("Could not deliver error reply")

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        self._recorder.record(build_history_message(message))
