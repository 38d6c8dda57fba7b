"""
Pydantic schemas for the colony simulation.

All agent and world data structures are defined here.

Design Philosophy:
- Vitals and fulfillment are clamped on every assignment, so no code path can
  push them outside 0-100
- Personality and aspiration are frozen at creation
- Memory buffers and relationship logs evict their oldest entry on overflow
- Agents only reference each other by id, never by object
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .environment.schemas import Hostile, Position, TileMap
from .tasks import AIState, Aspiration, Task


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


PERSONALITY_TRAITS = (
    "curiosity",
    "friendliness",
    "bravery",
    "humor",
    "melancholy",
    "patience",
    "creativity",
    "loyalty",
    "stubbornness",
    "optimism",
)

FULFILLMENT_NEEDS_ORDER = ("social", "exploration", "creativity", "tranquility")

THOUGHT_MEMORY_CAP = 5
CONVERSATION_MEMORY_CAP = 3
EVENT_MEMORY_CAP = 10
RELATIONSHIP_LOG_CAP = 10
WORLD_LOG_CAP = 100


# ============================================================================
# Agent Components
# ============================================================================

class Personality(BaseModel):
    """Ten stable traits in [0, 1]. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    curiosity: float = Field(0.5, ge=0.0, le=1.0)
    friendliness: float = Field(0.5, ge=0.0, le=1.0)
    bravery: float = Field(0.5, ge=0.0, le=1.0)
    humor: float = Field(0.5, ge=0.0, le=1.0)
    melancholy: float = Field(0.3, ge=0.0, le=1.0)
    patience: float = Field(0.5, ge=0.0, le=1.0)
    creativity: float = Field(0.5, ge=0.0, le=1.0)
    loyalty: float = Field(0.5, ge=0.0, le=1.0)
    stubbornness: float = Field(0.5, ge=0.0, le=1.0)
    optimism: float = Field(0.5, ge=0.0, le=1.0)

    def trait(self, name: str) -> float:
        return float(getattr(self, name))

    def as_dict(self) -> Dict[str, float]:
        return {name: self.trait(name) for name in PERSONALITY_TRAITS}


class Fulfillment(BaseModel):
    """Non-vital needs, each clamped to 0-100."""

    model_config = ConfigDict(validate_assignment=True)

    social: float = 50.0
    exploration: float = 50.0
    creativity: float = 50.0
    tranquility: float = 50.0

    @field_validator("social", "exploration", "creativity", "tranquility")
    @classmethod
    def _clamp_level(cls, value: float) -> float:
        return _clamp(value)

    def level(self, need: str) -> float:
        return float(getattr(self, need))

    def set_level(self, need: str, value: float) -> None:
        setattr(self, need, value)


class MemoryEntry(BaseModel):
    content: str
    tick: int = 0


MemoryKind = Literal["thought", "conversation", "event"]


class AgentMemoryBuffers(BaseModel):
    """Bounded recall used to give prompts some continuity."""

    recent_thoughts: List[MemoryEntry] = Field(default_factory=list)
    recent_conversations: List[MemoryEntry] = Field(default_factory=list)
    significant_events: List[MemoryEntry] = Field(default_factory=list)
    visited_areas: Set[str] = Field(default_factory=set)

    def remember(self, kind: MemoryKind, content: str, tick: int) -> MemoryEntry:
        """Append to the buffer for ``kind``, evicting the oldest entry past its cap."""
        buffers = {
            "thought": (self.recent_thoughts, THOUGHT_MEMORY_CAP),
            "conversation": (self.recent_conversations, CONVERSATION_MEMORY_CAP),
            "event": (self.significant_events, EVENT_MEMORY_CAP),
        }
        if kind not in buffers:
            raise ValueError(f"Unknown memory kind '{kind}'")
        buffer, cap = buffers[kind]
        entry = MemoryEntry(content=content, tick=tick)
        buffer.append(entry)
        while len(buffer) > cap:
            buffer.pop(0)
        return entry


class ConversationLine(BaseModel):
    """One utterance, as stored in conversations and relationship logs."""

    speaker_id: str
    text: str
    timestamp: float = 0.0
    tick: int = 0


class Relationship(BaseModel):
    """One side of a symmetric pair relationship."""

    affinity: int = 0
    interactions: int = 0
    last_interaction_tick: Optional[int] = None
    conversation_log: List[ConversationLine] = Field(default_factory=list)

    def log_line(self, line: ConversationLine) -> None:
        self.conversation_log.append(line)
        while len(self.conversation_log) > RELATIONSHIP_LOG_CAP:
            self.conversation_log.pop(0)


# ============================================================================
# Agent
# ============================================================================

class Agent(BaseModel):
    """A dwarf: vitals, needs, personality, behaviour state, and social ties.

    ``hunger`` and ``mood`` are clamped on assignment (``agent.hunger += 500``
    lands on 100). ``personality`` and ``aspiration`` are frozen fields and
    raise on reassignment.
    """

    model_config = ConfigDict(validate_assignment=True)

    agent_id: str
    name: str
    x: int = 0
    y: int = 0

    hunger: float = 0.0
    mood: float = 70.0
    hp: float = 20.0
    max_hp: float = 20.0

    fulfillment: Fulfillment = Field(default_factory=Fulfillment)
    personality: Personality = Field(default_factory=Personality, frozen=True)
    skills: Dict[str, float] = Field(default_factory=dict)
    aspiration: Aspiration = Field(Aspiration.EXPLORER, frozen=True)

    state: AIState = AIState.IDLE
    target: Optional[Position] = None
    current_task: Optional[Task] = None
    ticks_since_decision: int = 0

    relationships: Dict[str, Relationship] = Field(default_factory=dict)
    memory: AgentMemoryBuffers = Field(default_factory=AgentMemoryBuffers)

    current_thought: Optional[str] = None
    last_thought_tick: Optional[int] = None

    tiles_dug: int = 0
    items_crafted: int = 0

    @field_validator("hunger", "mood")
    @classmethod
    def _clamp_vital(cls, value: float) -> float:
        return _clamp(value)

    @property
    def alive(self) -> bool:
        return self.hp > 0

    @property
    def hp_ratio(self) -> float:
        if self.max_hp <= 0:
            return 0.0
        return self.hp / self.max_hp

    @property
    def position(self) -> Position:
        return Position(x=self.x, y=self.y)

    def relationship_with(self, other_id: str) -> Relationship:
        """Return (creating on first use) this agent's side of the pair."""
        relationship = self.relationships.get(other_id)
        if relationship is None:
            relationship = Relationship()
            self.relationships[other_id] = relationship
        return relationship


# ============================================================================
# World
# ============================================================================

class WorldState(BaseModel):
    """What the engines see of the world each tick.

    The cognition engines read ``map`` but never write it; they only touch the
    agent fields they own.
    """

    tick: int = 0
    dwarves: List[Agent] = Field(default_factory=list)
    map: TileMap
    hostiles: List[Hostile] = Field(default_factory=list)
    log: List[str] = Field(default_factory=list)

    def find_dwarf(self, agent_id: str) -> Optional[Agent]:
        for dwarf in self.dwarves:
            if dwarf.agent_id == agent_id:
                return dwarf
        return None

    def living_dwarves(self) -> List[Agent]:
        return [dwarf for dwarf in self.dwarves if dwarf.alive]

    def add_log(self, message: str) -> None:
        self.log.append(message)
        while len(self.log) > WORLD_LOG_CAP:
            self.log.pop(0)

    def recent_log_for(self, name: str, limit: int = 3) -> List[str]:
        return [line for line in self.log if name in line][-limit:]
