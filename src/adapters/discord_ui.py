"""discord.py rendering of core notices, profiles and input modals."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

import discord

from adapters.notification_formatting import (
    control_custom_id,
    match_details,
    profile_fields,
    tone_color,
)
from core.models import Notice, Profile, ScoredCandidate

BUTTON_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
}

PROFILE_EDIT = "profile:edit"
PROFILE_CONFIRM = "profile:confirm"
PROFILE_REGEN = "profile:regen"

START_PROFILE = "start:profile"
START_VIEW = "start:view"
START_EDIT = "start:edit"
START_MATCH = "start:match"


def notice_embed(notice: Notice) -> Optional[discord.Embed]:
    """Notices with a title or fields render as an embed, others as plain text."""

    if not notice.title and not notice.fields:
        return None
    embed = discord.Embed(title=notice.title, description=notice.text, color=tone_color(notice.tone))
    for name, value in notice.fields:
        embed.add_field(name=name, value=value or "-", inline=name not in {"Purpose", "Interests"})
    return embed


def button_view(buttons: list[tuple[str, str, str]]) -> Optional[discord.ui.View]:
    """Build a persistent view from (custom_id, label, style) rows.

    Clicks are routed by custom id in the cog's on_interaction listener, so
    the buttons keep working across restarts.
    """

    if not buttons:
        return None
    view = discord.ui.View(timeout=None)
    for custom_id, label, style in buttons:
        view.add_item(
            discord.ui.Button(
                custom_id=custom_id,
                label=label,
                style=BUTTON_STYLES.get(style, discord.ButtonStyle.secondary),
            )
        )
    return view


def notice_view(notice: Notice) -> Optional[discord.ui.View]:
    if not notice.controls or not notice.match_id:
        return None
    return button_view(
        [(control_custom_id(notice.match_id, c.action), c.label, c.style) for c in notice.controls]
    )


def notice_payload(notice: Notice, content: Optional[str] = None) -> dict:
    """kwargs for Messageable.send()."""

    embed = notice_embed(notice)
    payload: dict = {"content": content if content is not None else (None if embed else notice.text)}
    if embed is not None:
        payload["embed"] = embed
    view = notice_view(notice)
    if view is not None:
        payload["view"] = view
    return payload


def profile_embed(profile: Profile, title: str = "👤 Profile") -> discord.Embed:
    embed = discord.Embed(title=title, color=tone_color("info"))
    for name, value, inline in profile_fields(profile):
        embed.add_field(name=name, value=value, inline=inline)
    return embed


def candidate_preview_embed(candidate: ScoredCandidate, display_name: str) -> discord.Embed:
    embed = profile_embed(candidate.profile, f"🔎 Suggested partner (preview): {display_name}")
    embed.add_field(name="Match details", value=match_details(candidate), inline=False)
    return embed


def profile_actions_view(include_edit: bool = True) -> discord.ui.View:
    buttons = []
    if include_edit:
        buttons.append((PROFILE_EDIT, "Edit", "secondary"))
    buttons.append((PROFILE_CONFIRM, "Confirm", "success"))
    buttons.append((PROFILE_REGEN, "Regenerate", "primary"))
    return button_view(buttons)


def start_here_view() -> discord.ui.View:
    return button_view(
        [
            (START_PROFILE, "Create profile", "primary"),
            (START_VIEW, "View my profile", "secondary"),
            (START_EDIT, "Edit my profile", "secondary"),
            (START_MATCH, "Get matched", "success"),
        ]
    )


class ProfileCreateModal(discord.ui.Modal, title="AI profile"):
    """Name plus free-form narrative, summarized into a profile."""

    name = discord.ui.TextInput(label="Name", style=discord.TextStyle.short, required=True, max_length=80)
    narrative = discord.ui.TextInput(
        label="Who do you want to meet, and why?",
        style=discord.TextStyle.paragraph,
        required=True,
        max_length=1500,
    )

    def __init__(self, on_submit: Callable[[discord.Interaction, str, str], Awaitable[None]]) -> None:
        super().__init__()
        self._on_submit = on_submit

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self._on_submit(interaction, self.name.value, self.narrative.value)


class ProfileEditModal(discord.ui.Modal, title="Edit profile"):
    """Pre-filled manual edit of every profile field."""

    def __init__(
        self,
        profile: Optional[Profile],
        on_submit: Callable[[discord.Interaction, dict], Awaitable[None]],
    ) -> None:
        super().__init__()
        self._on_submit = on_submit
        self.name = discord.ui.TextInput(
            label="Name", required=True, max_length=80, default=profile.name if profile else None
        )
        self.purpose = discord.ui.TextInput(
            label="Purpose of the chat",
            style=discord.TextStyle.paragraph,
            required=True,
            max_length=500,
            default=profile.purpose if profile else None,
        )
        self.interests = discord.ui.TextInput(
            label="Interests (comma separated)",
            required=False,
            max_length=300,
            default=", ".join(profile.interests) if profile else None,
        )
        self.intro = discord.ui.TextInput(
            label="One-line intro", required=False, max_length=120, default=profile.intro if profile else None
        )
        for item in (self.name, self.purpose, self.interests, self.intro):
            self.add_item(item)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self._on_submit(
            interaction,
            {
                "name": self.name.value,
                "purpose": self.purpose.value,
                "interests_text": self.interests.value,
                "intro": self.intro.value,
            },
        )
