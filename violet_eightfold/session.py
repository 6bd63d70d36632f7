"""Conversation history for one mode/persona context."""

from __future__ import annotations

from collections.abc import Iterable

from violet_eightfold.models import SYSTEM, USER, ChatMessage, Turn


class EmptyInputError(ValueError):
    """Raised when the user submits blank content."""


class SessionState:
    """Ordered turn history owned by a single context.

    One instance per direct-chat persona context or council session; never
    shared. `next_offset` counts every turn ever appended and is not reset by
    clear(), so parsed turn ids stay unique for the lifetime of the state.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []
        self._offset = 0

    def __len__(self) -> int:
        return len(self._turns)

    def __bool__(self) -> bool:
        return bool(self._turns)

    @property
    def next_offset(self) -> int:
        return self._offset

    def append(self, turns: Iterable[Turn]) -> None:
        for turn in turns:
            self._turns.append(turn)
            self._offset += 1

    def append_user(self, content: str) -> Turn:
        if not content or not content.strip():
            raise EmptyInputError("Message cannot be empty")
        turn = Turn(id=f"user-{self._offset}", speaker=USER, content=content)
        self.append([turn])
        return turn

    def snapshot(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def to_conversation_payload(self) -> list[ChatMessage]:
        """Map history to {role, content} pairs, dropping SYSTEM turns."""
        return [
            ChatMessage(
                role="user" if t.is_user else "assistant",
                content=t.content,
                id=t.id,
                archetype_id=None if t.is_user else t.speaker,
            )
            for t in self._turns
            if t.speaker != SYSTEM
        ]

    def clear(self) -> None:
        self._turns.clear()
