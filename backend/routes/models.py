"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from violet_eightfold.models import Language, QuestState, UserProfile


class WireBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginBody(BaseModel):
    username: str = ""
    secret: str = ""


class WireMessage(WireBody):
    id: str | None = None
    role: str
    content: str = ""
    timestamp: int | None = None
    archetype_id: str | None = None


class CouncilBody(WireBody):
    messages: list[WireMessage] | None = None
    user_profile: UserProfile = Field(default_factory=UserProfile)


class IntegrateBody(WireBody):
    session_history: list[WireMessage] | None = None
    topic: str | None = None
    current_quest_state: QuestState | None = None
    language: Language = "EN"
