"""Council output parsing into speaker-attributed turns.

Wire convention: each turn starts with a ``[[SPEAKER: ID]]`` tag and runs
until the next tag or the end of the buffer. Direct-mode replies carry no
tags and become a single turn.
"""

import re
from collections.abc import Iterable

from violet_eightfold.archetypes import is_archetype
from violet_eightfold.models import MODERATOR, SYSTEM, USER, Turn

_SPEAKER_TAG = re.compile(r"\[\[SPEAKER:\s*([A-Za-z_]+)\s*\]\]", re.IGNORECASE)
_MODERATOR_LABEL = re.compile(r"^MODERATOR:\s*", re.IGNORECASE)


def parse(
    buffer: str,
    turn_index_offset: int,
    fallback_speaker: str = MODERATOR,
) -> list[Turn]:
    """Split an LLM output buffer into turns.

    A non-empty segment before the first tag is attributed to
    `fallback_speaker` (a leading "MODERATOR:" label is dropped). A buffer
    without any tag becomes one turn for `fallback_speaker`. Segments whose
    content is empty after trimming are discarded. Unknown speaker ids are
    kept as-is.

    Ids depend only on `turn_index_offset` and the segment position, so
    parsing the same buffer twice yields identical turns.
    """
    if not buffer or not buffer.strip():
        return []

    fallback = fallback_speaker.upper()
    parts = _SPEAKER_TAG.split(buffer)

    if len(parts) == 1:
        return [Turn(id=f"text-{turn_index_offset}", speaker=fallback, content=buffer)]

    turns: list[Turn] = []

    preamble = _MODERATOR_LABEL.sub("", parts[0].strip(), count=1).strip()
    if preamble:
        turns.append(Turn(id=f"pre-{turn_index_offset}", speaker=fallback, content=preamble))

    # re.split with one capture group alternates: text, id, text, id, text ...
    for i in range(1, len(parts), 2):
        content = parts[i + 1].strip()
        if not content:
            continue
        turns.append(Turn(
            id=f"turn-{turn_index_offset}-{i}",
            speaker=parts[i].upper(),
            content=content,
        ))

    return turns


def is_known_speaker(speaker: str) -> bool:
    """True for archetype ids and the USER/MODERATOR/SYSTEM sentinels."""
    return speaker in (USER, MODERATOR, SYSTEM) or is_archetype(speaker)


def format_transcript(turns: Iterable[Turn]) -> str:
    """Convert turns back to plain "SPEAKER: content" lines, skipping SYSTEM turns."""
    return "\n".join(f"{t.speaker}: {t.content}" for t in turns if t.speaker != SYSTEM)
