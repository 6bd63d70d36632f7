"""Tests for violet_eightfold.models."""

import pytest
from pydantic import ValidationError

from violet_eightfold.models import (
    Attribute,
    IntegrationResult,
    Milestone,
    Mode,
    Turn,
    UserProfile,
    UserStats,
)


class TestTurn:
    def test_content_trimmed(self) -> None:
        t = Turn(id="x", speaker="SAGE", content="  wise  ")
        assert t.content == "wise"
        assert not t.is_user

    def test_empty_content_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Turn(id="x", speaker="SAGE", content="   ")

    def test_frozen(self) -> None:
        t = Turn(id="x", speaker="USER", content="hi")
        assert t.is_user
        with pytest.raises(ValidationError):
            t.content = "changed"


class TestUserProfile:
    def test_mode_follows_active_archetype(self) -> None:
        assert UserProfile().mode is Mode.COUNCIL
        assert UserProfile(active_archetype="SAGE").mode is Mode.DIRECT

    def test_wire_format(self) -> None:
        wire = UserProfile(lore="x", language="DE", active_archetype="LOVER").to_wire()
        assert wire == {"lore": "x", "language": "DE", "activeArchetype": "LOVER"}

    def test_wire_omits_absent_archetype(self) -> None:
        assert "activeArchetype" not in UserProfile().to_wire()

    def test_unsupported_language_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserProfile(language="FR")


class TestIntegrationResult:
    def test_empty(self) -> None:
        assert IntegrationResult().is_empty()
        assert IntegrationResult().to_wire() == {}

    def test_parse_camel_case(self) -> None:
        result = IntegrationResult.model_validate({
            "newLoreEntry": "Fear of failure is fading.",
            "newAttribute": {"name": "Resolve", "level": "2", "type": "BUFF"},
        })
        assert not result.is_empty()
        assert result.new_lore_entry == "Fear of failure is fading."
        assert result.new_attribute.name == "Resolve"

    def test_invalid_milestone_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Milestone(id="m", title="t", date="2026-01-01", type="EPIPHANY")

    def test_invalid_attribute_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Attribute(name="x", type="CURSE")


class TestUserStats:
    def test_defaults(self) -> None:
        stats = UserStats()
        assert stats.attributes == []
        assert stats.quest_state().quest == ""

    def test_wire_roundtrip_uses_camel_case(self) -> None:
        stats = UserStats(current_quest="Find the door", state="Calm")
        wire = stats.to_wire()
        assert wire["currentQuest"] == "Find the door"
        assert UserStats.model_validate(wire) == stats
