"""Council completion and integration endpoints.

Both proxy the upstream chat-completions model. The system instruction is
always rebuilt here from `userProfile`; clients never send one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from violet_eightfold.archetypes import is_archetype
from violet_eightfold.integration import ScribeAnalyzer
from violet_eightfold.llm import CompletionError, collect
from violet_eightfold.models import MODERATOR, USER, ChatMessage, Mode, Turn
from violet_eightfold.prompts import build_system_instruction

from backend.auth import User, authenticate
from .models import CouncilBody, IntegrateBody, WireMessage

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_turns(messages: list[WireMessage]) -> list[Turn]:
    turns = []
    for i, m in enumerate(messages):
        if not m.content.strip():
            continue
        if m.role == "user":
            speaker = USER
        else:
            speaker = (m.archetype_id or MODERATOR).upper()
        turns.append(Turn(id=m.id or f"msg-{i}", speaker=speaker, content=m.content))
    return turns


@router.post("/council")
async def council(body: CouncilBody, request: Request, user: User = Depends(authenticate)):
    """One council (or direct, when activeArchetype is set) completion."""
    if body.messages is None:
        raise HTTPException(400, "messages array is required")

    profile = body.user_profile
    persona = (profile.active_archetype or "").upper()
    if persona and is_archetype(persona):
        instruction = build_system_instruction(Mode.DIRECT, persona, profile.language, profile.lore)
    else:
        instruction = build_system_instruction(Mode.COUNCIL, None, profile.language, profile.lore)

    messages = [
        ChatMessage(role="user" if m.role == "user" else "assistant", content=m.content)
        for m in body.messages
    ]
    logger.debug(
        "council user=%s persona=%s messages=%d", user.id, persona or "-", len(messages),
    )
    try:
        reply = await collect(request.app.state.llm.complete(instruction, messages))
    except CompletionError as e:
        logger.error("upstream completion failed: %s", e)
        raise HTTPException(502, str(e))
    return {"reply": reply}


@router.post("/integrate")
async def integrate(body: IntegrateBody, request: Request, user: User = Depends(authenticate)):
    """Run the Scribe over a session transcript. Absent fields mean no change."""
    if body.session_history is None:
        raise HTTPException(400, "sessionHistory array is required")

    turns = _to_turns(body.session_history)
    if body.topic and body.topic.strip() and not (turns and turns[0].content == body.topic.strip()):
        turns.insert(0, Turn(id="topic", speaker=USER, content=body.topic))

    analyzer = ScribeAnalyzer(request.app.state.llm, language=body.language)
    logger.debug("integrate user=%s turns=%d", user.id, len(turns))
    try:
        result = await analyzer.analyze(turns, body.current_quest_state)
    except CompletionError as e:
        logger.error("upstream scribe failed: %s", e)
        raise HTTPException(502, str(e))
    return result.to_wire()
