"""OpenAI profile summarizer adapter.

Turns a member's name and free-form narrative into a structured profile draft.
The model output is untrusted: it is parsed and validated here and any
failure raises so the core can fall back to its deterministic summary.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List

from openai import AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError

from core.errors import SummaryError
from core.models import ProfileDraft

LOGGER = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)

PROMPT_TEMPLATE = """
Return ONLY JSON for:
{{ "name": string, "purpose": string, "interests": string[], "intro": string }}
- purpose: 80-140 chars, concrete
- interests: 3-6 tags
- intro: one line 30-80 chars, friendly
Input:
name: {name}
narrative:
{narrative}
""".strip()


class ProfileSummary(BaseModel):
    """Schema the model must follow; lengths are guidance, not enforced."""

    name: str = ""
    purpose: str = ""
    interests: List[str] = Field(default_factory=list)
    intro: str = ""


def extract_json(text: str) -> str:
    """Pull the JSON object out of a reply that may wrap it in prose or fences."""

    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text.strip()


def parse_summary(text: str) -> ProfileDraft:
    """Validate raw model output into a ProfileDraft, raising SummaryError."""

    if not text or not text.strip():
        raise SummaryError("Empty summarizer response")
    try:
        summary = ProfileSummary.model_validate(json.loads(extract_json(text)))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise SummaryError(f"Malformed summarizer response: {exc}") from exc
    return ProfileDraft(
        name=summary.name,
        purpose=summary.purpose,
        interests=tuple(summary.interests),
        intro=summary.intro,
    )


class OpenAISummarizer:
    """SummarizerPort backed by the OpenAI chat completions API."""

    def __init__(self, model: str, api_key: str, timeout: float = 30.0) -> None:
        self._model = model
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def summarize(self, name: str, narrative: str) -> ProfileDraft:
        prompt = PROMPT_TEMPLATE.format(name=name, narrative=narrative)
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
        )
        text = response.choices[0].message.content or ""
        LOGGER.debug("Summarizer returned %s chars", len(text))
        return parse_summary(text)
