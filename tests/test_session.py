"""Tests for violet_eightfold.session."""

import pytest

from violet_eightfold.models import SYSTEM, Turn
from violet_eightfold.session import EmptyInputError, SessionState


class TestSessionState:
    def test_starts_empty(self) -> None:
        state = SessionState()
        assert len(state) == 0
        assert not state
        assert state.next_offset == 0

    def test_append_user(self) -> None:
        state = SessionState()
        turn = state.append_user("  Hello council  ")
        assert turn.is_user
        assert turn.content == "Hello council"
        assert state.snapshot() == (turn,)

    def test_blank_user_input_rejected(self) -> None:
        state = SessionState()
        with pytest.raises(EmptyInputError):
            state.append_user("   ")
        assert len(state) == 0
        assert state.next_offset == 0

    def test_offset_survives_clear(self) -> None:
        state = SessionState()
        state.append_user("one")
        state.append([Turn(id="t", speaker="SAGE", content="two")])
        state.clear()
        assert len(state) == 0
        assert state.next_offset == 2
        assert state.append_user("three").id == "user-2"

    def test_conversation_payload(self) -> None:
        state = SessionState()
        state.append_user("topic")
        state.append([
            Turn(id="s", speaker=SYSTEM, content="note"),
            Turn(id="w", speaker="WARRIOR", content="Act."),
        ])
        payload = state.to_conversation_payload()
        assert [(m.role, m.content) for m in payload] == [("user", "topic"), ("assistant", "Act.")]
        assert payload[0].archetype_id is None
        assert payload[1].archetype_id == "WARRIOR"

    def test_snapshot_is_detached(self) -> None:
        state = SessionState()
        state.append_user("a")
        snap = state.snapshot()
        state.append_user("b")
        assert len(snap) == 1
