"""Tuning knobs for the thought and conversation engines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..config import Config


@dataclass(frozen=True)
class ThoughtSettings:
    """Wall-clock timings and probabilities; all times in seconds."""

    thought_cooldown: float = 12.0
    meeting_cooldown: float = 15.0
    interaction_distance: int = 4
    conversation_chance: float = 0.7
    max_conversation_turns: int = 6

    background_interval: float = 12.0
    background_chance: float = 0.4
    terrain_thought_chance: float = 0.15
    hunger_thresholds: Tuple[int, ...] = (40, 60, 80)
    mood_shift_threshold: float = 15.0

    initiate_delay: Tuple[float, float] = (1.5, 2.5)
    response_delay: Tuple[float, float] = (2.0, 4.0)
    continue_chance: float = 0.5
    end_delay: float = 3.0
    # Conversations shorter than this leave no memory behind.
    memorable_turns: int = 2

    @property
    def conversation_range(self) -> int:
        """Pairs may drift this far apart before a conversation breaks off."""
        return self.interaction_distance + 2

    @classmethod
    def from_config(cls) -> "ThoughtSettings":
        return cls(
            thought_cooldown=Config.THOUGHT_COOLDOWN_SECONDS,
            meeting_cooldown=Config.MEETING_COOLDOWN_SECONDS,
            interaction_distance=Config.INTERACTION_DISTANCE,
            conversation_chance=Config.CONVERSATION_CHANCE,
            max_conversation_turns=Config.MAX_CONVERSATION_TURNS,
            background_interval=Config.BACKGROUND_THOUGHT_INTERVAL_SECONDS,
        )


__all__ = ["ThoughtSettings"]
