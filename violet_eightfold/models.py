"""Core domain models.

Every component of the council core exchanges these types. Pydantic is used
for validation and serialisation at every data boundary; wire JSON uses
camelCase aliases (``userProfile``, ``newLoreEntry`` ...).
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Language = Literal["EN", "DE"]
Role = Literal["user", "assistant"]

USER = "USER"
MODERATOR = "MODERATOR"
SYSTEM = "SYSTEM"


class Mode(str, Enum):
    DIRECT = "DIRECT"
    COUNCIL = "COUNCIL"


class WireModel(BaseModel):
    """Base for models that travel as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Dialogue
# ---------------------------------------------------------------------------

class Turn(BaseModel):
    """One attributed utterance. Immutable once created."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    speaker: str  # archetype id | USER | MODERATOR | SYSTEM
    content: str = Field(min_length=1)

    @property
    def is_user(self) -> bool:
        return self.speaker == USER


class ChatMessage(BaseModel):
    """One entry of the conversation payload sent to a CompletionClient."""

    role: Role
    content: str
    id: str | None = None
    archetype_id: str | None = None  # speaker of an assistant turn


class UserProfile(WireModel):
    """Context sent alongside a conversation; activeArchetype selects DIRECT mode."""

    lore: str = ""
    language: Language = "EN"
    active_archetype: str | None = None

    @property
    def mode(self) -> Mode:
        return Mode.DIRECT if self.active_archetype else Mode.COUNCIL


# ---------------------------------------------------------------------------
# Integration (the Scribe)
# ---------------------------------------------------------------------------

class Milestone(WireModel):
    id: str
    title: str
    date: str
    description: str = ""
    type: Literal["BREAKTHROUGH", "BENCHMARK", "REALIZATION"]
    icon: str = "Zap"


class Attribute(WireModel):
    name: str
    level: str = ""
    description: str = ""
    type: Literal["BUFF", "DEBUFF", "SKILL"]


class IntegrationResult(WireModel):
    """Structured updates extracted from a council transcript.

    Every field is optional; an absent field means "no change detected".
    """

    new_lore_entry: str | None = None
    updated_quest: str | None = None
    updated_state: str | None = None
    new_milestone: Milestone | None = None
    new_attribute: Attribute | None = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class QuestState(WireModel):
    quest: str = ""
    state: str = ""


class UserStats(WireModel):
    title: str = ""
    level: str = ""
    state: str = ""
    current_quest: str = ""
    attributes: list[Attribute] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)

    def quest_state(self) -> QuestState:
        return QuestState(quest=self.current_quest, state=self.state)
