from __future__ import annotations

import asyncio

from core.errors import ProfileInputError
from core.models import ProfileDraft
from core.profiles import FALLBACK_TAG, PURPOSE_CHARS, ProfileService, fallback_summary
from fakes import FakeStore, make_profile


class FakeSummarizer:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def summarize(self, name: str, narrative: str):
        self.calls.append((name, narrative))
        if self.error is not None:
            raise self.error
        return self.result


def test_fallback_summary_derives_keywords() -> None:
    draft = fallback_summary("Alice", "I work in fintech and care about security and design")

    assert draft.name == "Alice"
    assert draft.interests == ("FINTECH", "DESIGN", "SECURITY")
    assert draft.intro


def test_fallback_summary_defaults_tag_and_clips_purpose() -> None:
    draft = fallback_summary("", "x" * 500)

    assert draft.interests == (FALLBACK_TAG,)
    assert len(draft.purpose) == PURPOSE_CHARS
    assert draft.name == "Anonymous"


def test_create_profile_uses_summarizer_output() -> None:
    store = FakeStore()
    summarizer = FakeSummarizer(
        ProfileDraft(name="Alice", purpose="Meet ML founders", interests=("ml", "startup", "ml"), intro="Hi!")
    )
    service = ProfileService(store, summarizer)

    profile = asyncio.run(service.create_profile("g1", "alice", "Alice", "I build ML products"))

    assert profile.interests == ("ML", "STARTUP")
    assert profile.purpose == "Meet ML founders"
    assert store.get_profile("alice") == profile
    assert summarizer.calls == [("Alice", "I build ML products")]


def test_summarizer_error_falls_back() -> None:
    store = FakeStore()
    service = ProfileService(store, FakeSummarizer(error=RuntimeError("timeout")))

    profile = asyncio.run(service.create_profile("g1", "alice", "Alice", "Looking at ai startups"))

    assert profile.interests == ("AI", "STARTUP")
    assert profile.intro == fallback_summary("Alice", "x").intro


def test_malformed_summarizer_output_falls_back() -> None:
    service = ProfileService(FakeStore(), FakeSummarizer(result={"interests": "ai"}))

    profile = asyncio.run(service.create_profile("g1", "alice", "Alice", "career change"))

    assert profile.interests == ("CAREER",)


def test_summarizer_gaps_are_filled() -> None:
    summarizer = FakeSummarizer(ProfileDraft(name="", purpose="", interests=(), intro=""))
    service = ProfileService(FakeStore(), summarizer)

    profile = asyncio.run(service.create_profile("g1", "alice", "Alice", "Talk about product"))

    assert profile.name == "Alice"
    assert profile.purpose == "Talk about product"


def test_create_profile_requires_name_and_narrative() -> None:
    service = ProfileService(FakeStore(), None)

    for name, narrative in (("", "story"), ("Alice", "   ")):
        try:
            asyncio.run(service.create_profile("g1", "alice", name, narrative))
        except ProfileInputError:
            continue
        raise AssertionError("expected ProfileInputError")


def test_edit_profile_parses_tags_and_overwrites() -> None:
    store = FakeStore()
    store.upsert_profile(make_profile("alice", purpose="old", interests=("OLD",)))
    service = ProfileService(store, None)

    profile = service.edit_profile("g1", "alice", "Alice", "New purpose", "ai, 핀테크, ai", "hello")

    assert profile.interests == ("AI", "핀테크")
    assert store.get_profile("alice").purpose == "New purpose"


def test_edit_profile_requires_name_and_purpose() -> None:
    service = ProfileService(FakeStore(), None)

    try:
        service.edit_profile("g1", "alice", "Alice", "")
    except ProfileInputError:
        pass
    else:
        raise AssertionError("expected ProfileInputError")


def test_regenerate_profile_without_base_returns_none() -> None:
    service = ProfileService(FakeStore(), None)

    assert asyncio.run(service.regenerate_profile("g1", "ghost")) is None


def test_regenerate_profile_resummarizes_existing() -> None:
    store = FakeStore()
    store.upsert_profile(make_profile("alice", name="Alice", purpose="marketing for fintech"))
    summarizer = FakeSummarizer(ProfileDraft(name="Alice", purpose="Grow fintech", interests=("fintech",), intro="Hey"))
    service = ProfileService(store, summarizer)

    profile = asyncio.run(service.regenerate_profile("g1", "alice"))

    assert summarizer.calls == [("Alice", "marketing for fintech")]
    assert profile.purpose == "Grow fintech"
    assert store.get_profile("alice").interests == ("FINTECH",)
