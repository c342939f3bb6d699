from __future__ import annotations

import asyncio

from core.config import MatchingConfig
from core.similarity import (
    SimilarityEngine,
    composite_score,
    interest_similarity,
    jaccard,
    purpose_similarity,
    tokenize,
)
from fakes import FakeStore, make_message, make_profile

CONFIG = MatchingConfig()


def test_jaccard_bounds_and_identity() -> None:
    a = {"AI", "ML"}
    b = {"ML", "PM", "DESIGN"}
    assert 0.0 <= jaccard(a, b) <= 1.0
    assert jaccard(a, b) == 1 / 4
    assert jaccard(a, a) == 1.0
    assert jaccard(set(), b) == 0.0
    assert jaccard(a, set()) == 0.0


def test_tokenize_is_unicode_aware_and_ignores_punctuation() -> None:
    assert tokenize("Meet, founders! 창업 준비-중") == {"meet", "founders", "창업", "준비", "중"}


def test_purpose_similarity_empty_text_is_zero() -> None:
    assert purpose_similarity("", "find a mentor") == 0.0
    assert purpose_similarity("find a mentor", "   ") == 0.0


def test_purpose_similarity_ignores_case_and_punctuation() -> None:
    assert purpose_similarity("Find a mentor!", "find A MENTOR") == 1.0


def test_composite_score_weights() -> None:
    assert composite_score(1.0, 0.0, CONFIG) == 0.7
    assert composite_score(0.0, 1.0, CONFIG) == 0.3
    assert abs(composite_score(0.5, 0.5, CONFIG) - 0.5) < 1e-9


def test_composite_score_is_monotonic_in_each_component() -> None:
    steps = [i / 10 for i in range(11)]
    for fixed in steps:
        interest_scores = [composite_score(x, fixed, CONFIG) for x in steps]
        purpose_scores = [composite_score(fixed, x, CONFIG) for x in steps]
        assert interest_scores == sorted(interest_scores)
        assert purpose_scores == sorted(purpose_scores)


def test_rank_sorts_descending_and_includes_everyone_once() -> None:
    store = FakeStore()
    requester = make_profile("r", purpose="meet startup founders", interests=("AI", "ML"))
    store.upsert_profile(requester)
    store.upsert_profile(make_profile("low", purpose="play games", interests=("GAME",)))
    store.upsert_profile(make_profile("high", purpose="meet startup founders", interests=("AI", "ML")))
    store.upsert_profile(make_profile("mid", purpose="startup talk", interests=("AI",)))
    store.upsert_profile(make_profile("other-guild", guild_id="g2", interests=("AI", "ML")))

    ranked = asyncio.run(SimilarityEngine(store, CONFIG).rank(requester))

    assert [c.user_id for c in ranked] == ["high", "mid", "low"]
    assert abs(ranked[0].score - 1.0) < 1e-9
    scores = [c.score for c in ranked]
    assert scores == sorted(scores, reverse=True)


def test_rank_uses_history_derived_tags() -> None:
    store = FakeStore()
    requester = make_profile("r", interests=("DEVOPS",))
    store.upsert_profile(requester)
    store.upsert_profile(make_profile("quiet"))
    store.upsert_profile(make_profile("chatty"))
    store.insert_message(make_message("m1", "chatty", "our devops pipeline keeps breaking"))

    ranked = asyncio.run(SimilarityEngine(store, CONFIG).rank(requester))

    assert ranked[0].user_id == "chatty"
    assert ranked[0].interest_score == 1.0
    assert ranked[1].interest_score == 0.0


def test_rank_skips_history_when_disabled() -> None:
    store = FakeStore()
    requester = make_profile("r", interests=("DEVOPS",))
    store.upsert_profile(requester)
    store.upsert_profile(make_profile("chatty"))
    store.insert_message(make_message("m1", "chatty", "devops devops"))

    config = MatchingConfig(history_enabled=False)
    ranked = asyncio.run(SimilarityEngine(store, config).rank(requester))

    assert ranked[0].interest_score == 0.0
    assert store.history_reads == []


def test_candidate_without_tags_or_history_scores_zero_interest() -> None:
    store = FakeStore()
    requester = make_profile("r", purpose="talk", interests=("AI", "PM"))
    store.upsert_profile(requester)
    store.upsert_profile(make_profile("blank", purpose="talk"))

    ranked = asyncio.run(SimilarityEngine(store, CONFIG).rank(requester))

    assert ranked[0].interest_score == 0.0
    assert interest_similarity(requester.interests, ()) == 0.0


def test_equal_scores_keep_listing_order() -> None:
    store = FakeStore()
    requester = make_profile("r", purpose="meet people", interests=("AI",))
    store.upsert_profile(requester)
    store.upsert_profile(make_profile("first", purpose="meet people", interests=("AI",)))
    store.upsert_profile(make_profile("better", purpose="meet people", interests=("AI",), intro="x"))
    store.upsert_profile(make_profile("zero", purpose="x"))
    store.upsert_profile(make_profile("second", purpose="meet people", interests=("AI",)))

    ranked = asyncio.run(SimilarityEngine(store, CONFIG).rank(requester))

    assert [c.user_id for c in ranked] == ["first", "better", "second", "zero"]


def test_rank_with_no_other_members_is_empty() -> None:
    store = FakeStore()
    requester = make_profile("r")
    store.upsert_profile(requester)

    assert asyncio.run(SimilarityEngine(store, CONFIG).rank(requester)) == []
