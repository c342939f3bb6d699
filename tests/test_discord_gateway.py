from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Optional

import discord

from adapters.discord_gateway import DiscordGateway
from core.models import Notice


def _http_error(message: str) -> discord.HTTPException:
    return discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), message)


class StubMessageable:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.sent: list[dict] = []

    async def send(self, **kwargs) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(kwargs)


class StubClient:
    def __init__(self, users: dict[int, StubMessageable], channels: dict[int, StubMessageable]) -> None:
        self.users = users
        self.channels = channels

    def get_user(self, user_id: int):
        return self.users.get(user_id)

    async def fetch_user(self, user_id: int):
        raise _http_error("Unknown User")

    def get_channel(self, channel_id: int):
        return self.channels.get(channel_id)

    async def fetch_channel(self, channel_id: int):
        raise _http_error("Unknown Channel")


NOTICE = Notice(text="You have a coffee chat proposal")


def test_notify_delivers_by_dm_first() -> None:
    user = StubMessageable()
    hub = StubMessageable()
    gateway = DiscordGateway(StubClient({42: user}, {555: hub}), "555")

    assert asyncio.run(gateway.notify("42", NOTICE)) is True
    assert user.sent[0]["content"] == NOTICE.text
    assert hub.sent == []


def test_notify_falls_back_to_channel_with_mention() -> None:
    user = StubMessageable(error=_http_error("Cannot send messages to this user"))
    hub = StubMessageable()
    gateway = DiscordGateway(StubClient({42: user}, {555: hub}), "555")

    assert asyncio.run(gateway.notify("42", NOTICE)) is True
    [posted] = hub.sent
    assert posted["content"].startswith("<@42>")
    assert NOTICE.text in posted["content"]


def test_notify_reports_failure_when_fallback_also_fails() -> None:
    user = StubMessageable(error=_http_error("Cannot send messages to this user"))
    hub = StubMessageable(error=_http_error("Missing Access"))
    gateway = DiscordGateway(StubClient({42: user}, {555: hub}), "555")

    assert asyncio.run(gateway.notify("42", NOTICE)) is False


def test_notify_without_fallback_channel_reports_failure() -> None:
    user = StubMessageable(error=discord.ClientException("DMs closed"))
    gateway = DiscordGateway(StubClient({42: user}, {}), None)

    assert asyncio.run(gateway.notify("42", NOTICE)) is False


def test_notify_unknown_user_uses_fallback() -> None:
    hub = StubMessageable()
    gateway = DiscordGateway(StubClient({}, {555: hub}), "555")

    assert asyncio.run(gateway.notify("42", NOTICE)) is True
    assert len(hub.sent) == 1
