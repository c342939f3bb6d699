from __future__ import annotations

from adapters.openai_summarizer import PROMPT_TEMPLATE, extract_json, parse_summary
from core.errors import SummaryError


def _raises_summary_error(text: str) -> bool:
    try:
        parse_summary(text)
    except SummaryError:
        return True
    return False


def test_extract_json_prefers_fenced_block() -> None:
    text = 'Sure!\n```json\n{"name": "A"}\n```\nAnything else?'

    assert extract_json(text) == '{"name": "A"}'


def test_extract_json_falls_back_to_outer_braces() -> None:
    assert extract_json('Here you go: {"a": {"b": 1}} thanks') == '{"a": {"b": 1}}'


def test_parse_summary_builds_draft() -> None:
    draft = parse_summary(
        '{"name": "Alice", "purpose": "Meet founders", "interests": ["ai", "startup"], "intro": "Hi"}'
    )

    assert draft.name == "Alice"
    assert draft.interests == ("ai", "startup")
    assert draft.intro == "Hi"


def test_parse_summary_tolerates_missing_fields() -> None:
    draft = parse_summary('{"name": "Alice"}')

    assert draft.purpose == ""
    assert draft.interests == ()


def test_parse_summary_rejects_malformed_output() -> None:
    assert _raises_summary_error("")
    assert _raises_summary_error("no json here")
    assert _raises_summary_error('{"name": "A", "interests": "ai, ml"}')
    assert _raises_summary_error("[1, 2]")


def test_prompt_template_formats() -> None:
    prompt = PROMPT_TEMPLATE.format(name="Alice", narrative="I like ML")

    assert '{ "name": string' in prompt
    assert prompt.endswith("I like ML")
