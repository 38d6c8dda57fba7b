"""
Dwarfmind - cognition core for a Dwarf-Fortress-like colony simulation.

Utility-based task selection every tick, plus an optional local LLM that
turns simulation events into dwarf thoughts and conversations without ever
blocking the tick.

Everything is injected: no module-level state, one ColonyMind per colony.
"""

__version__ = "0.1.0"

# Main simulation components
from .orchestrator import Colony, ColonySettings, DecisionFailedError
from .decision import Decision, DecisionEngine, DecisionSettings
from .events import EventBus, EventType

# Agents and needs
from .schemas import (
    Agent,
    AgentMemoryBuffers,
    ConversationLine,
    Fulfillment,
    MemoryEntry,
    Personality,
    Relationship,
    WorldState,
)
from .entities import NameRegistry, create_dwarf
from .tasks import (
    AIState,
    Aspiration,
    BuildTask,
    CraftTask,
    DigTask,
    ExploreTask,
    FightTask,
    ForageTask,
    IdleTask,
    SocializeTask,
    Task,
)

# Cognition
from .cognition import (
    ColonyMind,
    GenerationQueue,
    HealthProbe,
    ManualClock,
    MindCallbacks,
    ThoughtSettings,
    TimerQueue,
)
from .local_llm import LocalLLMError, OllamaBackend, check_connection

# Configuration
from .config import Config

__all__ = [
    "__version__",
    "Colony",
    "ColonySettings",
    "DecisionFailedError",
    "Decision",
    "DecisionEngine",
    "DecisionSettings",
    "EventBus",
    "EventType",
    "Agent",
    "AgentMemoryBuffers",
    "ConversationLine",
    "Fulfillment",
    "MemoryEntry",
    "Personality",
    "Relationship",
    "WorldState",
    "NameRegistry",
    "create_dwarf",
    "AIState",
    "Aspiration",
    "BuildTask",
    "CraftTask",
    "DigTask",
    "ExploreTask",
    "FightTask",
    "ForageTask",
    "IdleTask",
    "SocializeTask",
    "Task",
    "ColonyMind",
    "GenerationQueue",
    "HealthProbe",
    "ManualClock",
    "MindCallbacks",
    "ThoughtSettings",
    "TimerQueue",
    "LocalLLMError",
    "OllamaBackend",
    "check_connection",
    "Config",
]
