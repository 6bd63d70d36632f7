"""System instructions for direct and council mode, rendered with Handlebars.

Templates use triple-stash (``{{{x}}}``) for every injected text so persona
prompts and user lore pass through verbatim, without HTML escaping.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import pybars

from violet_eightfold.archetypes import (
    ARCHETYPE_IDS,
    SYNTHESIZER,
    get_archetype,
    get_archetypes,
    language_name,
)
from violet_eightfold.models import Language, Mode, QuestState

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return compiled(context)
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

DIRECT_TEMPLATE = """{{{system_prompt}}}

CRITICAL INSTRUCTIONS:
- You are speaking DIRECTLY to the user in a one-on-one conversation.
- Respond ONLY as {{{name}}}.
- Do NOT simulate other archetypes or create a council dialogue.
- Do NOT use the [[SPEAKER:]] format - just respond naturally as {{{name}}}.
- Be authentic to your archetype's voice and perspective.
- Do not mention other archetypes unless the user asks about them.
- Keep responses concise, helpful, and strictly in character.

IMPORTANT: You must respond in {{{language}}}."""

COUNCIL_TEMPLATE = """You are the "Violet Council" ({{{council_name}}}), a simulation of 8 internal archetypes within the user's psyche.
The user is present in the session. This is an ongoing conversation.

The eight archetypes are:
{{#each roster}}{{number}}. {{id}} - {{{role}}}. {{{description}}}
{{/each}}
Instructions:
1. Simulate a dialogue between the relevant archetypes based on the user's input.
2. Do not involve all 8 unless the issue is massive. Usually, 2-4 key archetypes debate.
3. The {{synthesizer}} should usually speak last to synthesize, but this is not a hard rule.
4. You may direct questions to the user.
5. After a round of debate, STOP generating to allow the user to respond. Do not simulate the user.

Output Format:
Use this format exactly for each archetype's turn (use the ID in the header, not the translated name):

[[SPEAKER: ARCHETYPE_ID]]
The content of what they say.

Example:
[[SPEAKER: WARRIOR]]
We need to act.
[[SPEAKER: {{synthesizer}}]]
Agreed.

Valid Archetype IDs: {{valid_ids}}

IMPORTANT: You must respond in {{{language}}}."""

LORE_TEMPLATE = """[USER PSYCHOLOGICAL PROFILE & BACKGROUND]
{{{lore}}}

Integrate this context into your understanding of the user. DO NOT recite these facts explicitly unless relevant. Use them to shape your advice and tone."""

SCRIBE_TEMPLATE = """You are "The Scribe". You operate in the background of the Violet Council.
Your task is to read the transcript of a Council Session and extract meaningful updates for the user's Soul Blueprint.

[TRANSCRIPT START]
{{{transcript}}}
[TRANSCRIPT END]

[CURRENT QUEST]: {{{quest}}}
[CURRENT STATE]: {{{state}}}
[CURRENT DATE]: {{today}}

Analyze the transcript. Did the user or council reach a breakthrough?
1. Lore: a concise summary (1-2 sentences) of any NEW realization to add to the user's permanent context.
2. Milestone: if a major epiphany occurred, create a milestone object.
3. Attribute: if a new skill or trait was defined, create an attribute object.
4. Quest/State: did the user's current quest or emotional state change?

Return a single JSON object with these optional keys and nothing else:
  "newLoreEntry": string
  "updatedQuest": string (only if the quest has shifted)
  "updatedState": string (only if the emotional state has shifted)
  "newMilestone": {"id": string, "title": string, "date": "YYYY-MM-DD", "description": string, "type": "BREAKTHROUGH" | "BENCHMARK" | "REALIZATION", "icon": string}
  "newAttribute": {"name": string, "level": string, "description": string, "type": "BUFF" | "DEBUFF" | "SKILL"}
If nothing new happened, return {}.
Write all text values in {{{language}}}."""

_COUNCIL_NAMES = {"EN": "The Violet Eightfold", "DE": "Das Violette Achtfache"}


# ── Builders ─────────────────────────────────────────────


def build_system_instruction(
    mode: Mode,
    persona: str | None,
    language: Language,
    user_lore: str,
) -> str:
    """Build the system instruction for one request.

    DIRECT mode requires `persona` and constrains the model to that single
    voice in plain prose. COUNCIL mode ignores `persona` and embeds the
    roster plus the speaker-tag output contract. Non-blank `user_lore` is
    appended verbatim as background context; blank lore adds nothing.
    """
    if mode == Mode.DIRECT:
        if not persona:
            raise ValueError("DIRECT mode requires a persona")
        archetype = get_archetype(persona, language)
        instruction = render_prompt(DIRECT_TEMPLATE, {
            "system_prompt": archetype.system_prompt,
            "name": archetype.name,
            "language": language_name(language),
        })
    else:
        roster = [
            {"number": str(i), "id": a.id, "role": a.role, "description": a.description}
            for i, a in enumerate(get_archetypes(language), start=1)
        ]
        instruction = render_prompt(COUNCIL_TEMPLATE, {
            "council_name": _COUNCIL_NAMES.get(language, _COUNCIL_NAMES["EN"]),
            "roster": roster,
            "synthesizer": SYNTHESIZER,
            "valid_ids": ", ".join(ARCHETYPE_IDS),
            "language": language_name(language),
        })

    if user_lore and user_lore.strip():
        instruction += "\n\n" + render_prompt(LORE_TEMPLATE, {"lore": user_lore})
    return instruction


def build_scribe_prompt(
    transcript: str,
    quest_state: QuestState | None,
    language: Language = "EN",
    today: date | None = None,
) -> str:
    """Build the extraction instruction for the integration step."""
    quest_state = quest_state or QuestState()
    return render_prompt(SCRIBE_TEMPLATE, {
        "transcript": transcript,
        "quest": quest_state.quest or "unknown",
        "state": quest_state.state or "unknown",
        "today": (today or date.today()).isoformat(),
        "language": language_name(language),
    })
