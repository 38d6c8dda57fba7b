"""Tests for the conversation state machine on a manual clock."""

import random

import pytest

from dwarfmind.cognition import ColonyMind, HealthProbe, ManualClock, MindCallbacks, ThoughtSettings
from dwarfmind.cognition.fallbacks import SPEECH_FALLBACKS
from dwarfmind.environment import open_tile_map
from dwarfmind.local_llm import GenerationRequest, LocalLLMHTTPError
from dwarfmind.schemas import Agent, Personality, WorldState


class EchoBackend:
    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, generation: GenerationRequest) -> str:
        self.calls += 1
        return f'"Line {self.calls}"'


class BrokenBackend:
    async def generate(self, generation: GenerationRequest) -> str:
        raise LocalLLMHTTPError(500, "model crashed")


CHATTY = ThoughtSettings(conversation_chance=1.0, continue_chance=1.0, max_conversation_turns=6)


def _setup(*, online=False, backend=None, settings=CHATTY, distance=1):
    urist = Agent(agent_id="d0", name="Urist", x=5, y=5)
    bomrek = Agent(agent_id="d1", name="Bomrek", x=5 + distance, y=5)
    world = WorldState(map=open_tile_map(30, 30), dwarves=[urist, bomrek])
    spoken = []
    ended = []
    mind = ColonyMind(
        backend=backend or EchoBackend(),
        probe=HealthProbe.fixed(online),
        clock=ManualClock(),
        settings=settings,
        rng=random.Random(2),
        callbacks=MindCallbacks(
            on_speech=lambda speaker, listener, text: spoken.append((speaker.name, listener.name, text)),
            on_conversation_end=ended.append,
        ),
        world=world,
    )
    return mind, urist, bomrek, spoken, ended


@pytest.mark.asyncio
async def test_offline_conversation_runs_to_max_turns():
    mind, urist, bomrek, spoken, ended = _setup()
    conversations = mind.conversations

    conversation = await conversations.start(urist, bomrek, "A friendly face.")
    assert conversation is not None
    assert conversation.turns == 1
    assert conversations.is_talking("d0") and conversations.is_talking("d1")

    await mind.timers.drain()

    assert conversation.turns == 6
    assert len(conversation.messages) == 6
    assert conversations.active == {}
    assert conversations.completed == 1
    assert ended == [conversation]
    # Speakers alternate, starting with the initiator.
    assert [speaker for speaker, _, _ in spoken] == ["Urist", "Bomrek"] * 3
    assert all(text in SPEECH_FALLBACKS["generic"] for _, _, text in spoken)
    assert urist.memory.recent_conversations[-1].content == "Talked with Bomrek"
    assert bomrek.memory.recent_conversations[-1].content == "Talked with Urist"


@pytest.mark.asyncio
async def test_relationship_updates_are_symmetric():
    mind, urist, bomrek, _, _ = _setup()

    await mind.conversations.start(urist, bomrek, "Hello.")
    await mind.timers.drain()

    # One opening (+2) and five replies (+3 each).
    for agent, other in ((urist, bomrek), (bomrek, urist)):
        relationship = agent.relationships[other.agent_id]
        assert relationship.affinity == 17
        assert relationship.interactions == 6
        assert len(relationship.conversation_log) == 6
    assert urist.mood == 82 and bomrek.mood == 82


@pytest.mark.asyncio
async def test_online_conversation_uses_cleaned_generation():
    backend = EchoBackend()
    mind, urist, bomrek, spoken, _ = _setup(online=True, backend=backend)

    await mind.conversations.start(urist, bomrek, "Hello.")
    await mind.timers.drain()

    assert [text for _, _, text in spoken] == [f"Line {i}" for i in range(1, 7)]
    await mind.stop()


@pytest.mark.asyncio
async def test_failed_opening_line_starts_nothing():
    mind, urist, bomrek, spoken, _ = _setup(online=True, backend=BrokenBackend())

    assert await mind.conversations.start(urist, bomrek, "Hello.") is None
    assert mind.conversations.active == {}
    assert spoken == []
    await mind.stop()


@pytest.mark.asyncio
async def test_out_of_range_pair_does_not_talk():
    mind, urist, bomrek, _, _ = _setup(distance=10)

    assert await mind.conversations.start(urist, bomrek, "Hello?") is None
    assert mind.conversations.active == {}


@pytest.mark.asyncio
async def test_second_start_for_same_pair_is_ignored():
    mind, urist, bomrek, _, _ = _setup()

    first = await mind.conversations.start(urist, bomrek, "Hello.")
    second = await mind.conversations.start(bomrek, urist, "Hello back.")

    assert first is not None
    assert second is None
    assert list(mind.conversations.active) == ["d0:d1"]


@pytest.mark.asyncio
async def test_conversation_ends_when_partner_dies():
    mind, urist, bomrek, _, ended = _setup()

    await mind.conversations.start(urist, bomrek, "Hello.")
    bomrek.hp = 0
    await mind.timers.drain()

    assert mind.conversations.active == {}
    assert len(ended) == 1 and ended[0].turns == 1
    # One line is not a conversation worth remembering.
    assert urist.memory.recent_conversations == []


@pytest.mark.asyncio
async def test_conversation_ends_when_pair_drifts_apart():
    mind, urist, bomrek, _, ended = _setup()

    await mind.conversations.start(urist, bomrek, "Hello.")
    bomrek.x = 20
    await mind.timers.drain()

    assert ended and ended[0].turns == 1


@pytest.mark.asyncio
async def test_short_exchange_when_partner_loses_interest():
    settings = ThoughtSettings(continue_chance=0.0, max_conversation_turns=6)
    mind, urist, bomrek, spoken, ended = _setup(settings=settings)

    await mind.conversations.start(urist, bomrek, "Hello.")
    await mind.timers.drain()

    assert len(spoken) == 2
    assert ended[0].turns == 2
    assert urist.memory.recent_conversations[-1].content == "Talked with Bomrek"


def test_update_relationship_friendliness_bonus():
    mind, urist, _, _, _ = _setup()
    warm = Agent(agent_id="d2", name="Fikod", personality=Personality(friendliness=0.9))
    warmer = Agent(agent_id="d3", name="Kadol", personality=Personality(friendliness=0.8))

    assert mind.conversations.update_relationship(warm, warmer, "spoke") == 4
    assert mind.conversations.update_relationship(warm, urist, "greeted") == 2
    assert warm.relationships["d3"].affinity == 4
    assert warmer.relationships["d2"].affinity == 4
