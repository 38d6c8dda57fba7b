"""Prompt rendering utilities.

Turns agent state into the short natural-language fragments the templates in
:mod:`dwarfmind.cognition.prompts` expect, then performs ``{{placeholder}}``
replacement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from ..schemas import Agent, Personality, Relationship
from ..tasks import Aspiration, describe_task
from .prompts import DEFAULT_PROMPTS, THOUGHT_TEMPLATES, PromptLibrary, PromptTemplate


@dataclass
class RenderedPrompt:
    system: str
    user: str

    @property
    def text(self) -> str:
        """Single prompt string for completion-style endpoints."""
        return f"{self.system}\n\n{self.user}".strip()


ASPIRATION_PHRASES: Dict[Aspiration, str] = {
    Aspiration.MASTER_CRAFTSMAN: "seeks mastery of craft",
    Aspiration.ARCHITECT: "dreams of grand constructions",
    Aspiration.EXPLORER: "yearns to map the unknown",
    Aspiration.SOCIAL_BUTTERFLY: "craves companionship",
    Aspiration.HERMIT: "desires solitude",
    Aspiration.LEADER: "aspires to lead",
}

CONVERSATION_HISTORY_LINES = 3


# =============================
# Fragments
# =============================

def format_traits(personality: Personality, limit: int = 3) -> str:
    """Pronounced traits (> 0.7, or ``not X`` below 0.3), at most ``limit``."""
    dominant = []
    for trait, value in personality.as_dict().items():
        if value > 0.7:
            dominant.append(trait)
        elif value < 0.3:
            dominant.append(f"not {trait}")
    return ", ".join(dominant[:limit]) if dominant else "ordinary"


def describe_mood(mood: float) -> str:
    if mood > 80:
        return "happy and content"
    if mood > 60:
        return "feeling relatively good"
    if mood > 40:
        return "neutral"
    if mood > 20:
        return "a bit down"
    return "miserable"


def describe_hunger(hunger: float) -> str:
    if hunger > 80:
        return "desperately hungry"
    if hunger > 60:
        return "very hungry"
    if hunger > 40:
        return "getting hungry"
    if hunger > 20:
        return "slightly peckish"
    return "well-fed"


def describe_relationship(other_name: str, relationship: Optional[Relationship]) -> str:
    if relationship is None or relationship.interactions == 0:
        return f"You don't know {other_name} well yet."

    affinity = relationship.affinity
    if affinity > 50:
        desc = f"{other_name} is a good friend."
    elif affinity > 20:
        desc = f"You like {other_name}."
    elif affinity > -20:
        desc = f"{other_name} is an acquaintance."
    elif affinity > -50:
        desc = f"You find {other_name} a bit annoying."
    else:
        desc = f"You dislike {other_name}."

    count = relationship.interactions
    return f"{desc} You've talked {count} time{'' if count == 1 else 's'}."


def format_recent_memory(agent: Agent) -> str:
    parts = []
    thoughts = agent.memory.recent_thoughts
    if thoughts and thoughts[-1].content:
        parts.append(f'Recent thought: "{thoughts[-1].content}"')
    events = [entry.content for entry in agent.memory.significant_events[-2:] if entry.content]
    if events:
        parts.append("Recent events: " + "; ".join(events))
    return "\n".join(parts)


def format_conversation_history(
    relationship: Optional[Relationship],
    names: Mapping[str, str],
) -> str:
    """Last few exchanges, speaker ids resolved through ``names``."""
    if relationship is None or not relationship.conversation_log:
        return "(First conversation)"
    lines = ["Previous exchanges:"]
    for line in relationship.conversation_log[-CONVERSATION_HISTORY_LINES:]:
        speaker = names.get(line.speaker_id, line.speaker_id)
        lines.append(f'- {speaker}: "{line.text}"')
    return "\n".join(lines)


def describe_nearby(
    others: Sequence[Agent],
    *,
    with_state: bool = False,
    alone: str = "You are alone.",
) -> str:
    if not others:
        return alone
    if with_state:
        listing = ", ".join(f"{other.name} ({other.state.value})" for other in others)
        return f"You can see: {listing}."
    verb = "is" if len(others) == 1 else "are"
    return f"{', '.join(other.name for other in others)} {verb} nearby."


def describe_aspiration(agent: Agent) -> str:
    return ASPIRATION_PHRASES.get(agent.aspiration, "seeks purpose")


# =============================
# Rendering
# =============================

def render_prompt(template: PromptTemplate, replacements: Mapping[str, str]) -> RenderedPrompt:
    """Substitute ``{{key}}`` placeholders; unknown placeholders stay as-is."""
    system = template.system
    user = template.user
    for key, value in replacements.items():
        placeholder = "{{" + key + "}}"
        system = system.replace(placeholder, value)
        user = user.replace(placeholder, value)
    return RenderedPrompt(system=system, user=user)


def build_thought_prompt(
    agent: Agent,
    event_type: str,
    *,
    nearby: Sequence[Agent] = (),
    other: Optional[Agent] = None,
    location: str = "",
    library: PromptLibrary = DEFAULT_PROMPTS,
) -> RenderedPrompt:
    """Prompt for an event-triggered thought; unknown events render as observations."""
    template = library.get(THOUGHT_TEMPLATES.get(event_type, "thought_observation"))
    relationship = agent.relationships.get(other.agent_id) if other is not None else None
    replacements = {
        "name": agent.name,
        "traits": format_traits(agent.personality),
        "mood": describe_mood(agent.mood),
        "hunger": describe_hunger(agent.hunger),
        "memory": format_recent_memory(agent),
        "location": location or "somewhere",
        "aspiration": describe_aspiration(agent),
        "activity": describe_task(agent.current_task),
        "other_name": other.name if other is not None else "someone",
        "relationship": describe_relationship(other.name, relationship) if other is not None else "",
        "nearby": describe_nearby(
            nearby,
            with_state=template.name == "thought_observation",
            alone="" if template.name == "thought_hunger" else "You are alone.",
        ),
    }
    return render_prompt(template, replacements)


def build_speech_prompt(
    speaker: Agent,
    listener: Agent,
    thought: str,
    *,
    last_said: Optional[str] = None,
    library: PromptLibrary = DEFAULT_PROMPTS,
) -> RenderedPrompt:
    """Opening line when ``last_said`` is None, otherwise a reply to it."""
    relationship = speaker.relationships.get(listener.agent_id)
    names = {speaker.agent_id: speaker.name, listener.agent_id: listener.name}
    template = library.get("speech_initiate" if last_said is None else "speech_respond")
    replacements = {
        "name": speaker.name,
        "traits": format_traits(speaker.personality),
        "thought": thought,
        "other_name": listener.name,
        "relationship": describe_relationship(listener.name, relationship),
        "history": format_conversation_history(relationship, names),
        "last_said": last_said or "",
    }
    return render_prompt(template, replacements)


__all__ = [
    "RenderedPrompt",
    "ASPIRATION_PHRASES",
    "format_traits",
    "describe_mood",
    "describe_hunger",
    "describe_relationship",
    "format_recent_memory",
    "format_conversation_history",
    "describe_nearby",
    "describe_aspiration",
    "render_prompt",
    "build_thought_prompt",
    "build_speech_prompt",
]
