"""Tests for agent and world schemas."""

import pytest
from pydantic import ValidationError

from dwarfmind.environment import DigDesignation, open_tile_map
from dwarfmind.schemas import (
    CONVERSATION_MEMORY_CAP,
    RELATIONSHIP_LOG_CAP,
    THOUGHT_MEMORY_CAP,
    WORLD_LOG_CAP,
    Agent,
    ConversationLine,
    Personality,
    WorldState,
)
from dwarfmind.tasks import Aspiration, DigTask, describe_task


def test_memory_buffers_evict_oldest():
    agent = Agent(agent_id="d0", name="Urist")
    for i in range(THOUGHT_MEMORY_CAP + 2):
        agent.memory.remember("thought", f"t{i}", tick=i)
    for i in range(CONVERSATION_MEMORY_CAP + 1):
        agent.memory.remember("conversation", f"c{i}", tick=i)

    assert [entry.content for entry in agent.memory.recent_thoughts] == [
        f"t{i}" for i in range(2, THOUGHT_MEMORY_CAP + 2)
    ]
    assert agent.memory.recent_conversations[0].content == "c1"

    with pytest.raises(ValueError):
        agent.memory.remember("dream", "nope", tick=0)


def test_relationship_created_on_demand_and_log_capped():
    agent = Agent(agent_id="d0", name="Urist")
    relationship = agent.relationship_with("d1")
    assert agent.relationship_with("d1") is relationship

    for i in range(RELATIONSHIP_LOG_CAP + 3):
        relationship.log_line(ConversationLine(speaker_id="d1", text=str(i)))
    assert len(relationship.conversation_log) == RELATIONSHIP_LOG_CAP
    assert relationship.conversation_log[0].text == "3"


def test_personality_and_aspiration_are_frozen():
    agent = Agent(agent_id="d0", name="Urist", personality=Personality(bravery=0.9))

    with pytest.raises(ValidationError):
        agent.personality = Personality()
    with pytest.raises(ValidationError):
        agent.aspiration = Aspiration.HERMIT
    with pytest.raises(ValidationError):
        agent.personality.bravery = 0.1


def test_personality_traits_bounded():
    with pytest.raises(ValidationError):
        Personality(curiosity=1.5)


def test_task_union_restores_concrete_class():
    agent = Agent(agent_id="d0", name="Urist", current_task=DigTask(priority=40, target=DigDesignation(x=2, y=3)))

    restored = Agent.model_validate(agent.model_dump())

    assert isinstance(restored.current_task, DigTask)
    assert restored.current_task.target.x == 2
    assert describe_task(restored.current_task) == "carving stone"
    assert describe_task(None) == "relaxing"


def test_world_log_is_capped_and_searchable():
    world = WorldState(map=open_tile_map(3, 3))
    for i in range(WORLD_LOG_CAP + 5):
        world.add_log(f"Urist did thing {i}")
    world.add_log("Bomrek napped")

    assert len(world.log) == WORLD_LOG_CAP
    assert world.recent_log_for("Bomrek") == ["Bomrek napped"]
    assert world.recent_log_for("Urist", limit=2) == ["Urist did thing 103", "Urist did thing 104"]
