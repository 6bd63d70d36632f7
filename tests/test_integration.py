"""Tests for violet_eightfold.integration — Scribe parsing and analyzers."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from violet_eightfold.integration import (
    RemoteAnalyzer,
    ScribeAnalyzer,
    normalize_integration,
    parse_integration_output,
)
from violet_eightfold.llm import TransportError
from violet_eightfold.models import SYSTEM, USER, QuestState, Turn

TRANSCRIPT = [
    Turn(id="user-0", speaker=USER, content="Should I change careers?"),
    Turn(id="turn-1-1", speaker="SAGE", content="Consider the data first."),
    Turn(id="sys", speaker=SYSTEM, content="internal note"),
]


class _ScriptedClient:
    """CompletionClient returning a fixed reply and recording calls."""

    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, list]] = []

    async def complete(self, system_instruction, messages, *, profile=None, stream=False):
        self.calls.append((system_instruction, messages))
        if self.error:
            raise self.error
        yield self.reply


# ── parse_integration_output ─────────────────────────────────


def test_parse_full_result():
    text = """{
        "newLoreEntry": "  Values autonomy over salary. ",
        "updatedQuest": "Design a sabbatical",
        "newMilestone": {"title": "The Leap", "description": "Decided to quit", "type": "breakthrough"},
        "newAttribute": {"name": "Courage", "level": "1", "type": "BUFF"}
    }"""
    result = parse_integration_output(text, today=date(2026, 5, 4))
    assert result.new_lore_entry == "Values autonomy over salary."
    assert result.updated_quest == "Design a sabbatical"
    assert result.updated_state is None
    assert result.new_milestone.type == "BREAKTHROUGH"
    assert result.new_milestone.date == "2026-05-04"
    assert result.new_milestone.icon == "Zap"
    assert result.new_milestone.id.startswith("milestone-")
    assert result.new_attribute.name == "Courage"


def test_parse_strips_markdown_fences():
    text = '```json\n{"updatedState": "Hopeful"}\n```'
    assert parse_integration_output(text).updated_state == "Hopeful"


def test_non_json_is_empty_result():
    assert parse_integration_output("The council has spoken.").is_empty()


def test_non_object_json_is_empty_result():
    assert parse_integration_output('["a", "b"]').is_empty()


def test_empty_strings_are_absent():
    result = parse_integration_output('{"newLoreEntry": "", "updatedQuest": "   "}')
    assert result.is_empty()


def test_invalid_enum_drops_only_that_object():
    result = normalize_integration({
        "newLoreEntry": "kept",
        "newAttribute": {"name": "Doubt", "type": "CURSE"},
    })
    assert result.new_lore_entry == "kept"
    assert result.new_attribute is None


def test_milestone_without_title_dropped():
    result = normalize_integration({"newMilestone": {"type": "BENCHMARK"}})
    assert result.new_milestone is None


# ── ScribeAnalyzer ───────────────────────────────────────────


async def test_scribe_sends_transcript_without_system_turns():
    client = _ScriptedClient('{"updatedState": "Resolved"}')
    analyzer = ScribeAnalyzer(client, language="DE")
    result = await analyzer.analyze(TRANSCRIPT, QuestState(quest="Career", state="Torn"))
    assert result.updated_state == "Resolved"
    prompt, messages = client.calls[0]
    assert "USER: Should I change careers?\nSAGE: Consider the data first." in prompt
    assert "internal note" not in prompt
    assert "[CURRENT QUEST]: Career" in prompt
    assert "German" in prompt
    assert messages[0].role == "user"


async def test_scribe_soft_failure_on_prose():
    client = _ScriptedClient("I could not find anything of note, sorry!")
    result = await ScribeAnalyzer(client).analyze(TRANSCRIPT)
    assert result.is_empty()


async def test_scribe_empty_transcript_skips_request():
    client = _ScriptedClient("{}")
    result = await ScribeAnalyzer(client).analyze([])
    assert result.is_empty()
    assert client.calls == []


async def test_scribe_transport_error_propagates():
    client = _ScriptedClient(error=TransportError("down"))
    with pytest.raises(TransportError):
        await ScribeAnalyzer(client).analyze(TRANSCRIPT)


# ── RemoteAnalyzer ───────────────────────────────────────────


async def test_remote_analyzer_normalizes_backend_result():
    backend = AsyncMock()
    backend.integrate.return_value = {"newLoreEntry": "x", "newAttribute": {"name": "Y", "type": "skill"}}
    analyzer = RemoteAnalyzer(backend, topic="Careers")
    quest = QuestState(quest="Q")
    result = await analyzer.analyze(TRANSCRIPT, quest)
    assert result.new_lore_entry == "x"
    assert result.new_attribute.type == "SKILL"
    history, topic, quest_arg = backend.integrate.call_args[0]
    assert [m.role for m in history] == ["user", "assistant"]
    assert history[1].archetype_id == "SAGE"
    assert topic == "Careers"
    assert quest_arg is quest
