"""Prompt templates for dwarf thoughts and speech.

Wording here is tuning, not contract: the engines only rely on the template
names and the ``{{placeholder}}`` keys the renderers fill in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ..local_llm import GenerationRequest


@dataclass
class PromptTemplate:
    """Represents a templated prompt with placeholders."""

    name: str
    system: str
    user: str
    description: str = ""


class PromptLibrary:
    """Container for named prompt templates."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        return self.templates[name]

    def __contains__(self, name: str) -> bool:
        return name in self.templates


DEFAULT_PROMPTS = PromptLibrary()

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="thought_meeting",
        system="You are {{name}}, a dwarf. Traits: {{traits}}. Mood: {{mood}}.",
        user=(
            "You just noticed {{other_name}} nearby. {{relationship}}\n"
            "{{memory}}\n\n"
            "Express a brief internal thought (1-2 sentences, first person) about seeing "
            "{{other_name}}. Show personality:"
        ),
        description="Another dwarf came into range.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="thought_food_found",
        system="You are {{name}}, a dwarf. Traits: {{traits}}. You are {{hunger}}.",
        user=(
            "You just found food. {{nearby}}\n\n"
            "Brief thought (1-2 sentences, first person) - consider sharing or keeping it for yourself:"
        ),
        description="The dwarf reached a food source.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="thought_hunger",
        system="You are {{name}}. Traits: {{traits}}. You are {{hunger}}. {{nearby}}",
        user="Brief thought about your hunger (1-2 sentences, first person):",
        description="Hunger crossed a threshold.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="thought_observation",
        system=(
            "You are {{name}}. Traits: {{traits}}. Mood: {{mood}}. "
            "Location: {{location}}. Aspiration: {{aspiration}}. Currently {{activity}}."
        ),
        user=(
            "{{nearby}}\n"
            "{{memory}}\n\n"
            "Brief observation or thought (1-2 sentences, first person):"
        ),
        description="Background musing, new terrain, or a mood swing.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="speech_initiate",
        system='{{name}} ({{traits}}) is thinking: "{{thought}}"',
        user=(
            "{{name}} wants to start a conversation with {{other_name}}. {{relationship}}\n"
            "{{history}}\n\n"
            "Write what {{name}} says (1 short sentence, casual, no quotes):"
        ),
        description="Opening line of a conversation.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="speech_respond",
        system='{{other_name}} just said: "{{last_said}}"',
        user=(
            '{{name}} ({{traits}}) is thinking: "{{thought}}"\n'
            "{{relationship}}\n\n"
            "Write {{name}}'s brief reply (1 short sentence, casual, no quotes):"
        ),
        description="Reply to the previous line.",
    )
)


# Event type -> thought template name
THOUGHT_TEMPLATES: Dict[str, str] = {
    "meeting": "thought_meeting",
    "food_found": "thought_food_found",
    "food_depleted": "thought_food_found",
    "hunger": "thought_hunger",
    "hunger_threshold": "thought_hunger",
    "observation": "thought_observation",
    "new_terrain": "thought_observation",
    "mood_shift": "thought_observation",
}

THOUGHT_STOP = ["\n\n", "Human:", "User:", "You are"]
SPEECH_STOP = ["\n", '"', "*", "(", "They", "The dwarf"]


def thought_request(prompt: str, *, label: str = "thought") -> GenerationRequest:
    """Short, loose generation for an inner monologue line."""
    return GenerationRequest(
        prompt=prompt,
        max_tokens=80,
        temperature=0.9,
        stop=list(THOUGHT_STOP),
        label=label,
    )


def speech_request(prompt: str, *, label: str = "speech") -> GenerationRequest:
    """Single spoken line; stops at the first newline or quote."""
    return GenerationRequest(
        prompt=prompt,
        max_tokens=50,
        temperature=0.85,
        stop=list(SPEECH_STOP),
        label=label,
    )


__all__ = [
    "PromptTemplate",
    "PromptLibrary",
    "DEFAULT_PROMPTS",
    "THOUGHT_TEMPLATES",
    "THOUGHT_STOP",
    "SPEECH_STOP",
    "thought_request",
    "speech_request",
]
