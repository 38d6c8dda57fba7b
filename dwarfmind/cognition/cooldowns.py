"""Per-agent and per-pair cooldown windows, measured on an injected clock."""

from __future__ import annotations

from typing import Dict, Optional

from .scheduler import Clock, SystemClock


def pair_key(a: str, b: str) -> str:
    """Order-independent key for two agent ids."""
    first, second = sorted((a, b))
    return f"{first}:{second}"


class CooldownTracker:
    """Remembers when an agent last thought and when a pair last met."""

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        thought_window: float = 12.0,
        meeting_window: float = 15.0,
    ) -> None:
        self.clock: Clock = clock or SystemClock()
        self.thought_window = thought_window
        self.meeting_window = meeting_window
        self._thoughts: Dict[str, float] = {}
        self._meetings: Dict[str, float] = {}

    def on_thought_cooldown(self, agent_id: str) -> bool:
        last = self._thoughts.get(agent_id)
        return last is not None and self.clock.now() - last < self.thought_window

    def mark_thought(self, agent_id: str) -> None:
        self._thoughts[agent_id] = self.clock.now()

    def on_meeting_cooldown(self, a: str, b: str) -> bool:
        last = self._meetings.get(pair_key(a, b))
        return last is not None and self.clock.now() - last < self.meeting_window

    def mark_meeting(self, a: str, b: str) -> None:
        self._meetings[pair_key(a, b)] = self.clock.now()

    def forget(self, agent_id: str) -> None:
        """Drop every entry that mentions ``agent_id``."""
        self._thoughts.pop(agent_id, None)
        for key in [k for k in self._meetings if agent_id in k.split(":")]:
            del self._meetings[key]

    def clear(self) -> None:
        self._thoughts.clear()
        self._meetings.clear()


__all__ = ["pair_key", "CooldownTracker"]
