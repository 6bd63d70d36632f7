"""Tests for Handlebars prompt rendering and the system instruction builders."""

from datetime import date

import pytest

from violet_eightfold.archetypes import ARCHETYPE_IDS, get_archetype
from violet_eightfold.models import Mode, QuestState
from violet_eightfold.prompts import (
    PromptError,
    build_scribe_prompt,
    build_system_instruction,
    render_prompt,
)

LORE_HEADER = "[USER PSYCHOLOGICAL PROFILE & BACKGROUND]"


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "World"}) == "Hello World!"


def test_render_triple_stash_is_not_escaped():
    assert render_prompt("{{{x}}}", {"x": "a & <b>"}) == "a & <b>"


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── council mode ─────────────────────────────────────────────


def test_council_instruction_lists_every_archetype():
    text = build_system_instruction(Mode.COUNCIL, None, "EN", "")
    for archetype_id in ARCHETYPE_IDS:
        assert archetype_id in text
    assert "1. SOVEREIGN - Ruler & Decision Maker." in text
    assert "8. ALCHEMIST" in text


def test_council_instruction_carries_tag_convention():
    text = build_system_instruction(Mode.COUNCIL, None, "EN", "")
    assert "[[SPEAKER: ARCHETYPE_ID]]" in text
    assert "Valid Archetype IDs: SOVEREIGN, WARRIOR" in text


def test_council_ignores_persona():
    assert (
        build_system_instruction(Mode.COUNCIL, "SAGE", "EN", "")
        == build_system_instruction(Mode.COUNCIL, None, "EN", "")
    )


def test_language_directive():
    assert build_system_instruction(Mode.COUNCIL, None, "EN", "").endswith(
        "IMPORTANT: You must respond in English."
    )
    assert "IMPORTANT: You must respond in German (Deutsch)." in build_system_instruction(
        Mode.COUNCIL, None, "DE", ""
    )


def test_german_roster_uses_german_roles():
    text = build_system_instruction(Mode.COUNCIL, None, "DE", "")
    assert get_archetype("SAGE", "DE").role in text


# ── direct mode ──────────────────────────────────────────────


def test_direct_instruction_single_voice():
    warrior = get_archetype("WARRIOR")
    text = build_system_instruction(Mode.DIRECT, "WARRIOR", "EN", "")
    assert text.startswith(warrior.system_prompt)
    assert f"Respond ONLY as {warrior.name}." in text
    assert "SOVEREIGN - Ruler" not in text


def test_direct_requires_persona():
    with pytest.raises(ValueError):
        build_system_instruction(Mode.DIRECT, None, "EN", "")


def test_direct_unknown_persona():
    with pytest.raises(KeyError):
        build_system_instruction(Mode.DIRECT, "JESTER", "EN", "")


# ── lore ─────────────────────────────────────────────────────


def test_lore_appended_verbatim():
    lore = "Works as a nurse & paints <at night>."
    text = build_system_instruction(Mode.DIRECT, "LOVER", "EN", lore)
    assert LORE_HEADER in text
    assert lore in text


def test_blank_lore_omits_section():
    assert LORE_HEADER not in build_system_instruction(Mode.COUNCIL, None, "EN", "")
    assert LORE_HEADER not in build_system_instruction(Mode.COUNCIL, None, "EN", "  \n ")


# ── scribe ───────────────────────────────────────────────────


def test_scribe_prompt_contents():
    text = build_scribe_prompt(
        "USER: I quit.\nSAGE: Good.",
        QuestState(quest="Find work", state="Anxious"),
        "DE",
        today=date(2026, 3, 1),
    )
    assert "USER: I quit.\nSAGE: Good." in text
    assert "[CURRENT QUEST]: Find work" in text
    assert "[CURRENT STATE]: Anxious" in text
    assert "[CURRENT DATE]: 2026-03-01" in text
    assert '"newLoreEntry"' in text
    assert text.endswith("German (Deutsch).")


def test_scribe_prompt_unknown_quest():
    text = build_scribe_prompt("USER: hi", None)
    assert "[CURRENT QUEST]: unknown" in text
