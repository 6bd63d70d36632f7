"""Session orchestrator: owns both conversation contexts and the mode machine.

Council session phases:

    IDLE ──start_council──▶ STREAMING ──▶ ACTIVE ──reply──▶ STREAMING ──▶ ACTIVE
                                            │
                                            └──integrate──▶ INTEGRATING ──▶ IDLE

Direct chat runs beside the council session with its own SessionState per
persona. At most one request is in flight per orchestrator; it runs as an
asyncio.Task so it can be cancelled. A cancelled or superseded request never
touches history.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from violet_eightfold.archetypes import is_archetype
from violet_eightfold.dialogue import parse
from violet_eightfold.integration import IntegrationAnalyzer
from violet_eightfold.llm import AuthenticationError, CompletionClient, CompletionError
from violet_eightfold.models import (
    MODERATOR,
    ChatMessage,
    IntegrationResult,
    Language,
    Mode,
    QuestState,
    Turn,
    UserProfile,
)
from violet_eightfold.prompts import build_system_instruction
from violet_eightfold.session import EmptyInputError, SessionState

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    STREAMING = "STREAMING"
    INTEGRATING = "INTEGRATING"


class SessionStateError(RuntimeError):
    """The operation is not valid in the current phase."""


class SessionBusyError(SessionStateError):
    """A request is already in flight."""


class _Request:
    """Everything needed to (re-)issue one completion request."""

    def __init__(
        self,
        mode: Mode,
        state: SessionState,
        instruction: str,
        messages: list[ChatMessage],
        profile: UserProfile,
        fallback: str,
        persona: str | None = None,
    ) -> None:
        self.mode = mode
        self.state = state
        self.instruction = instruction
        self.messages = messages
        self.profile = profile
        self.fallback = fallback
        self.persona = persona


class SessionOrchestrator:
    def __init__(
        self,
        client: CompletionClient,
        analyzer: IntegrationAnalyzer,
        *,
        language: Language = "EN",
        user_lore: str = "",
        quest_state: QuestState | None = None,
        on_integrate: Callable[[IntegrationResult], Any] | None = None,
        on_update: Callable[[list[Turn]], Any] | None = None,
        stream: bool = True,
    ) -> None:
        self._client = client
        self._analyzer = analyzer
        self.language = language
        self.user_lore = user_lore
        self.quest_state = quest_state
        self.on_integrate = on_integrate
        self.on_update = on_update
        self.stream = stream

        self._phase = Phase.IDLE
        self._council = SessionState()
        self._direct = SessionState()
        self._direct_persona: str | None = None

        self._task: asyncio.Task | None = None
        self._task_mode: Mode | None = None
        self._generation = 0
        self._resume_phase = Phase.IDLE
        self._failed: _Request | None = None
        self._last_error: CompletionError | None = None

    # ── Introspection ─────────────────────────────────────

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def direct_persona(self) -> str | None:
        return self._direct_persona

    @property
    def last_error(self) -> CompletionError | None:
        return self._last_error

    @property
    def can_retry(self) -> bool:
        return self._failed is not None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def council_history(self) -> tuple[Turn, ...]:
        return self._council.snapshot()

    def direct_history(self) -> tuple[Turn, ...]:
        return self._direct.snapshot()

    # ── Council mode ──────────────────────────────────────

    async def start_council(self, topic: str) -> list[Turn] | None:
        """Open a new council session on `topic`, replacing any previous one."""
        if not topic or not topic.strip():
            raise EmptyInputError("Topic cannot be empty")
        if self._phase is Phase.INTEGRATING or (self.busy and self._task_mode is Mode.DIRECT):
            raise SessionBusyError("Another request is in flight")
        if self.busy:
            self.cancel()

        self._council.clear()
        self._failed = None
        self._council.append_user(topic)
        logger.info("council convened turns=%d", len(self._council))
        return await self._exchange(self._council_request(self._council.to_conversation_payload()))

    async def reply(self, message: str) -> list[Turn] | None:
        """Add a user turn to the active council session and get the council's response.

        Blank input is rejected before the phase is checked.
        """
        if not message or not message.strip():
            raise EmptyInputError("Message cannot be empty")
        if self._phase is Phase.IDLE:
            raise SessionStateError("No active council session")
        if self._phase is not Phase.ACTIVE or self.busy:
            raise SessionBusyError(f"Cannot reply while {self._phase.value}")

        messages = self._council.to_conversation_payload()
        turn = self._council.append_user(message)
        messages.append(ChatMessage(role="user", content=turn.content, id=turn.id))
        return await self._exchange(self._council_request(messages))

    async def integrate(self) -> IntegrationResult | None:
        """Adjourn the council: extract updates from the transcript and reset the session.

        Returns None if the analysis was cancelled.
        """
        if self._phase in (Phase.STREAMING, Phase.INTEGRATING) or self.busy:
            raise SessionBusyError(f"Cannot integrate while {self._phase.value}")
        if not self._council:
            self._phase = Phase.IDLE
            return IntegrationResult()

        transcript = self._council.snapshot()
        self._generation += 1
        generation = self._generation
        self._resume_phase = self._phase
        self._phase = Phase.INTEGRATING
        self._task_mode = Mode.COUNCIL
        self._task = asyncio.create_task(self._analyzer.analyze(transcript, self.quest_state))
        logger.info("integrating council session turns=%d", len(transcript))
        try:
            result = await self._task
        except asyncio.CancelledError:
            if generation != self._generation:
                return None
            self._phase = self._resume_phase
            raise
        except CompletionError as e:
            self._phase = self._resume_phase
            self._last_error = e
            logger.warning("integration failed: %s", e)
            raise
        finally:
            if generation == self._generation:
                self._task = None
                self._task_mode = None
                if self._phase is Phase.INTEGRATING:
                    self._phase = self._resume_phase

        if generation != self._generation:
            return None
        if self.on_integrate:
            # A failing callback leaves the transcript in place so integrate() can run again.
            await _maybe_await(self.on_integrate(result))
        if result.updated_quest or result.updated_state:
            current = self.quest_state or QuestState()
            self.quest_state = QuestState(
                quest=result.updated_quest or current.quest,
                state=result.updated_state or current.state,
            )
        self._council.clear()
        self._failed = None
        self._phase = Phase.IDLE
        logger.info("council adjourned")
        return result

    # ── Direct mode ───────────────────────────────────────

    def switch_persona(self, persona: str) -> None:
        """Select the direct-chat persona; a change starts a fresh context."""
        persona = persona.upper()
        if not is_archetype(persona):
            raise ValueError(f"Unknown archetype: {persona}")
        if persona == self._direct_persona:
            return
        if self.busy and self._task_mode is Mode.DIRECT:
            self.cancel()
        if self._failed is not None and self._failed.mode is Mode.DIRECT:
            self._failed = None
        self._direct.clear()
        self._direct_persona = persona
        logger.info("direct persona=%s", persona)

    async def send_message(self, persona: str, message: str) -> list[Turn] | None:
        """Talk to a single archetype. Returns the persona's reply turn."""
        if not message or not message.strip():
            raise EmptyInputError("Message cannot be empty")
        persona = persona.upper()
        # Only an in-flight direct request for another persona may be superseded.
        if self._phase is Phase.INTEGRATING or (
            self.busy and (self._task_mode is not Mode.DIRECT or persona == self._direct_persona)
        ):
            raise SessionBusyError("Another request is in flight")
        self.switch_persona(persona)

        messages = self._direct.to_conversation_payload()
        turn = self._direct.append_user(message)
        messages.append(ChatMessage(role="user", content=turn.content, id=turn.id))
        persona = self._direct_persona
        request = _Request(
            Mode.DIRECT,
            self._direct,
            build_system_instruction(Mode.DIRECT, persona, self.language, self.user_lore),
            messages,
            self._profile(persona),
            fallback=persona,
            persona=persona,
        )
        return await self._exchange(request)

    # ── Shared ────────────────────────────────────────────

    async def retry(self) -> list[Turn] | None:
        """Re-issue the last failed request with the identical payload."""
        if self._failed is None:
            raise SessionStateError("Nothing to retry")
        if self.busy or self._phase is Phase.INTEGRATING:
            raise SessionBusyError("Another request is in flight")
        logger.info("retrying %s request", self._failed.mode.value)
        return await self._exchange(self._failed)

    def cancel(self) -> bool:
        """Abort the in-flight request. Returns False if nothing was running."""
        if not self.busy:
            return False
        self._generation += 1
        self._task.cancel()
        self._task = None
        self._task_mode = None
        self._phase = self._resume_phase
        logger.info("request cancelled phase=%s", self._phase.value)
        return True

    def _profile(self, persona: str | None = None) -> UserProfile:
        return UserProfile(lore=self.user_lore, language=self.language, active_archetype=persona)

    def _council_request(self, messages: list[ChatMessage]) -> _Request:
        return _Request(
            Mode.COUNCIL,
            self._council,
            build_system_instruction(Mode.COUNCIL, None, self.language, self.user_lore),
            messages,
            self._profile(),
            fallback=MODERATOR,
        )

    async def _exchange(self, request: _Request) -> list[Turn] | None:
        self._generation += 1
        generation = self._generation
        if request.mode is Mode.COUNCIL:
            self._resume_phase = Phase.ACTIVE
        else:
            self._resume_phase = self._phase
        self._phase = Phase.STREAMING
        self._task_mode = request.mode
        self._task = asyncio.create_task(self._receive(request, generation))
        try:
            buffer = await self._task
        except asyncio.CancelledError:
            if generation != self._generation:
                return None
            self._phase = self._resume_phase
            raise
        except AuthenticationError as e:
            self._phase = self._resume_phase
            self._last_error = e
            self._failed = None
            logger.warning("authentication failed reason=%s", e.reason)
            raise
        except CompletionError as e:
            self._phase = self._resume_phase
            self._last_error = e
            self._failed = request
            logger.warning("%s request failed: %s", request.mode.value, e)
            raise
        finally:
            if generation == self._generation:
                self._task = None
                self._task_mode = None
                if self._phase is Phase.STREAMING:
                    self._phase = self._resume_phase

        if generation != self._generation:
            return None
        turns = parse(buffer, request.state.next_offset, request.fallback)
        request.state.append(turns)
        self._phase = self._resume_phase
        self._last_error = None
        if self._failed is request:
            self._failed = None
        logger.debug("%s response turns=%d", request.mode.value, len(turns))
        return turns

    async def _receive(self, request: _Request, generation: int) -> str:
        parts: list[str] = []
        chunks = self._client.complete(
            request.instruction,
            request.messages,
            profile=request.profile,
            stream=self.stream,
        )
        async for chunk in chunks:
            parts.append(chunk)
            if self.on_update and generation == self._generation:
                offset = request.state.next_offset
                await _maybe_await(self.on_update(parse("".join(parts), offset, request.fallback)))
        return "".join(parts)


async def _maybe_await(value: Any) -> None:
    if isinstance(value, Awaitable):
        await value
