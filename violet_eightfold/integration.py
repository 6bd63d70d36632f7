"""Integration analysis: derives journal/stat updates from a council transcript.

Two analyzers share one normaliser:

    ScribeAnalyzer  — asks an LLM for a JSON object matching IntegrationResult.
    RemoteAnalyzer  — delegates to the backend's POST /api/integrate.

Unparseable output is a soft failure: it is logged and yields an empty
IntegrationResult, indistinguishable from "nothing new found". Transport and
authentication errors still propagate.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from violet_eightfold.dialogue import format_transcript
from violet_eightfold.llm import BackendClient, CompletionClient, collect
from violet_eightfold.models import (
    SYSTEM,
    Attribute,
    ChatMessage,
    IntegrationResult,
    Language,
    Milestone,
    QuestState,
    Turn,
)
from violet_eightfold.prompts import build_scribe_prompt

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("newLoreEntry", "updatedQuest", "updatedState")


class IntegrationAnalyzer(Protocol):
    async def analyze(
        self,
        transcript: Sequence[Turn],
        current_quest_state: QuestState | None = None,
    ) -> IntegrationResult: ...


# ── Normalisation ────────────────────────────────────────


def _parse_json_output(text: str) -> dict | None:
    """Parse JSON from LLM output, stripping markdown fences."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Scribe output is not valid JSON: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning("Scribe output is not a JSON object: %s", type(data).__name__)
        return None
    return data


def _sub_object(model: type[BaseModel], value: Any, defaults: dict[str, Any]) -> BaseModel | None:
    if not isinstance(value, dict) or not value:
        return None
    merged = {**defaults, **{k: v for k, v in value.items() if v not in (None, "")}}
    if isinstance(merged.get("type"), str):
        merged["type"] = merged["type"].upper()
    try:
        return model.model_validate(merged)
    except ValidationError as e:
        logger.warning("Dropping invalid %s from scribe output: %s", model.__name__, e.error_count())
        return None


def normalize_integration(data: dict[str, Any], today: date | None = None) -> IntegrationResult:
    """Validate a raw camelCase dict into an IntegrationResult.

    Empty strings count as absent; an invalid milestone or attribute drops
    only that sub-object.
    """
    fields: dict[str, Any] = {}
    for key in _TEXT_FIELDS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            fields[key] = value.strip()

    milestone = _sub_object(Milestone, data.get("newMilestone"), {
        "id": f"milestone-{uuid.uuid4().hex[:8]}",
        "date": (today or date.today()).isoformat(),
    })
    if milestone is not None:
        fields["newMilestone"] = milestone

    attribute = _sub_object(Attribute, data.get("newAttribute"), {})
    if attribute is not None:
        fields["newAttribute"] = attribute

    return IntegrationResult.model_validate(fields)


def parse_integration_output(text: str, today: date | None = None) -> IntegrationResult:
    """Parse raw model output; anything unparseable becomes an empty result."""
    data = _parse_json_output(text or "")
    if data is None:
        return IntegrationResult()
    return normalize_integration(data, today)


# ── Analyzers ────────────────────────────────────────────


class ScribeAnalyzer:
    """Runs the Scribe prompt through a CompletionClient."""

    def __init__(self, client: CompletionClient, language: Language = "EN") -> None:
        self._client = client
        self.language = language

    async def analyze(
        self,
        transcript: Sequence[Turn],
        current_quest_state: QuestState | None = None,
    ) -> IntegrationResult:
        text = format_transcript(transcript)
        if not text:
            return IntegrationResult()
        prompt = build_scribe_prompt(text, current_quest_state, self.language)
        logger.debug("scribe analyze turns=%d prompt_len=%d", len(transcript), len(prompt))
        output = await collect(self._client.complete(
            prompt,
            [ChatMessage(role="user", content="Analyze the transcript and return the JSON object.")],
        ))
        result = parse_integration_output(output)
        logger.info("scribe found fields=%s", sorted(result.model_dump(exclude_none=True)))
        return result


class RemoteAnalyzer:
    """Delegates the extraction to the backend's /api/integrate endpoint."""

    def __init__(self, client: BackendClient, topic: str | None = None) -> None:
        self._client = client
        self.topic = topic

    async def analyze(
        self,
        transcript: Sequence[Turn],
        current_quest_state: QuestState | None = None,
    ) -> IntegrationResult:
        history = [
            ChatMessage(
                role="user" if t.is_user else "assistant",
                content=t.content,
                id=t.id,
                archetype_id=None if t.is_user else t.speaker,
            )
            for t in transcript
            if t.speaker != SYSTEM
        ]
        if not history:
            return IntegrationResult()
        data = await self._client.integrate(history, self.topic, current_quest_state)
        return normalize_integration(data)
