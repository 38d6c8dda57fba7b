"""Turn-based conversations between pairs of dwarves.

A conversation is keyed by the unordered pair of its participants and moves
none -> active -> ended. Every step is a timer callback that fires seconds
after it was scheduled, so each one looks the conversation and both agents
up again and quietly gives up when the world has moved on.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from ..environment.helpers import manhattan
from ..events import safe_call
from ..logging_utils import LOG_TAG_LLM, LOG_TAG_SUCCESS, is_verbose, log_llm, log_success
from ..needs import add_memory
from ..schemas import Agent, ConversationLine, WorldState
from .cooldowns import pair_key
from .fallbacks import clean_response, fallback_speech
from .health import HealthProbe
from .prompts import speech_request
from .queue import GenerationQueue
from .renderers import build_speech_prompt
from .scheduler import TimerQueue
from .settings import ThoughtSettings


SpeechCallback = Callable[[Agent, Agent, str], None]
ConversationCallback = Callable[["Conversation"], None]

AFFINITY_BY_ACTION = {"spoke": 2, "responded": 3}
DEFAULT_AFFINITY = 1
FRIENDLY_TRAIT = 0.7
CONVERSATION_MOOD_BONUS = 2


@dataclass
class Conversation:
    conversation_id: str
    participants: Tuple[str, str]
    messages: List[ConversationLine] = field(default_factory=list)
    turns: int = 0
    started_at: float = 0.0
    start_tick: int = 0

    @property
    def last_message(self) -> Optional[ConversationLine]:
        return self.messages[-1] if self.messages else None

    def partner_of(self, agent_id: str) -> str:
        first, second = self.participants
        return second if agent_id == first else first


class ConversationManager:
    """Owns the active-conversation map for one colony."""

    def __init__(
        self,
        *,
        queue: GenerationQueue,
        timers: TimerQueue,
        probe: HealthProbe,
        settings: Optional[ThoughtSettings] = None,
        rng: Optional[random.Random] = None,
        world: Optional[WorldState] = None,
        on_speech: Optional[SpeechCallback] = None,
        on_conversation_end: Optional[ConversationCallback] = None,
    ) -> None:
        self.queue = queue
        self.timers = timers
        self.probe = probe
        self.settings = settings or ThoughtSettings()
        self.rng = rng or random.Random()
        self.world = world
        self.on_speech = on_speech
        self.on_conversation_end = on_conversation_end
        self.active: Dict[str, Conversation] = {}
        self._starting: Set[str] = set()
        self.completed = 0

    # =============================
    # Lookups
    # =============================

    def _living(self, agent_id: str) -> Optional[Agent]:
        if self.world is None:
            return None
        agent = self.world.find_dwarf(agent_id)
        return agent if agent is not None and agent.alive else None

    def _in_range(self, a: Agent, b: Agent) -> bool:
        return manhattan(a, b) <= self.settings.conversation_range

    def _tick(self) -> int:
        return self.world.tick if self.world is not None else 0

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self.active.get(conversation_id)

    def conversation_between(self, a: str, b: str) -> Optional[Conversation]:
        return self.active.get(pair_key(a, b))

    def is_talking(self, agent_id: str) -> bool:
        return any(agent_id in conv.participants for conv in self.active.values())

    # =============================
    # Speech
    # =============================

    async def generate_speech(
        self,
        speaker: Agent,
        listener: Agent,
        thought: str,
        *,
        last_said: Optional[str] = None,
    ) -> Optional[str]:
        """One line for ``speaker``.

        Offline, the line comes from the fallback library. Online, a failed
        generation returns None so the caller can abandon the exchange; a
        reply that cleans down to nothing still falls back.
        """
        if not await self.probe.available():
            return fallback_speech(speaker, self.rng)
        prompt = build_speech_prompt(speaker, listener, thought, last_said=last_said).text
        raw = await self.queue.submit(speech_request(prompt, label=f"speech:{speaker.name}"))
        if raw is None:
            return None
        return clean_response(raw) or fallback_speech(speaker, self.rng)

    # =============================
    # State machine
    # =============================

    async def start_by_id(self, initiator_id: str, target_id: str, thought: str) -> Optional[Conversation]:
        initiator = self._living(initiator_id)
        target = self._living(target_id)
        if initiator is None or target is None:
            return None
        return await self.start(initiator, target, thought)

    async def start(self, initiator: Agent, target: Agent, thought: str) -> Optional[Conversation]:
        """Open a conversation with a generated first line.

        No-op when the pair already talks, is out of range, or the opening
        line could not be generated.
        """
        key = pair_key(initiator.agent_id, target.agent_id)
        if key in self.active or key in self._starting:
            return None
        if not self._in_range(initiator, target):
            return None

        self._starting.add(key)
        try:
            speech = await self.generate_speech(initiator, target, thought)
        finally:
            self._starting.discard(key)
        if speech is None or key in self.active:
            return None

        conversation = Conversation(
            conversation_id=key,
            participants=(initiator.agent_id, target.agent_id),
            started_at=self.timers.clock.now(),
            start_tick=self._tick(),
        )
        self.active[key] = conversation
        self._say(conversation, initiator, target, speech, "spoke")
        self._schedule_reply(conversation, target.agent_id)
        return conversation

    async def continue_(
        self,
        conversation_id: str,
        responder_id: str,
        previous: Optional[ConversationLine] = None,
    ) -> None:
        """Have ``responder_id`` answer the last line, then schedule what comes next."""
        conversation = self.active.get(conversation_id)
        if conversation is None:
            return
        if conversation.turns >= self.settings.max_conversation_turns:
            self.end(conversation_id)
            return

        responder = self._living(responder_id)
        partner = self._living(conversation.partner_of(responder_id))
        if responder is None or partner is None or not self._in_range(responder, partner):
            self.end(conversation_id)
            return

        previous = previous or conversation.last_message
        last_said = previous.text if previous is not None else "..."
        thought = responder.current_thought or "..."
        reply = await self.generate_speech(responder, partner, thought, last_said=last_said)

        if self.active.get(conversation_id) is not conversation:
            return
        if reply is None:
            self.end(conversation_id)
            return

        self._say(conversation, responder, partner, reply, "responded")
        if (
            conversation.turns < self.settings.max_conversation_turns
            and self.rng.random() < self.settings.continue_chance
        ):
            self._schedule_reply(conversation, partner.agent_id)
        else:
            self.timers.call_later(
                self.settings.end_delay,
                lambda: self.end(conversation_id),
                label=f"conversation-end:{conversation_id}",
            )

    def end(self, conversation_id: str) -> Optional[Conversation]:
        conversation = self.active.pop(conversation_id, None)
        if conversation is None:
            return None
        self.completed += 1
        if conversation.turns >= self.settings.memorable_turns:
            first, second = (self._living(agent_id) for agent_id in conversation.participants)
            tick = self._tick()
            if first is not None and second is not None:
                add_memory(first, "conversation", f"Talked with {second.name}", tick)
                add_memory(second, "conversation", f"Talked with {first.name}", tick)
        if is_verbose():
            log_success(
                f"  {LOG_TAG_SUCCESS} [Conversation] {conversation_id} ended after {conversation.turns} turns"
            )
        safe_call("on_conversation_end", self.on_conversation_end, conversation)
        return conversation

    def end_all_for(self, agent_id: str) -> None:
        for key in [k for k, conv in self.active.items() if agent_id in conv.participants]:
            self.end(key)

    # =============================
    # Helpers
    # =============================

    def _schedule_reply(self, conversation: Conversation, responder_id: str) -> None:
        low, high = self.settings.response_delay
        conversation_id = conversation.conversation_id
        self.timers.call_later(
            self.rng.uniform(low, high),
            lambda: self.continue_(conversation_id, responder_id),
            label=f"conversation-turn:{conversation_id}",
        )

    def _say(self, conversation: Conversation, speaker: Agent, listener: Agent, text: str, action: str) -> None:
        line = ConversationLine(
            speaker_id=speaker.agent_id,
            text=text,
            timestamp=self.timers.clock.now(),
            tick=self._tick(),
        )
        conversation.messages.append(line)
        conversation.turns += 1
        self.update_relationship(speaker, listener, action)
        speaker.relationship_with(listener.agent_id).log_line(line)
        listener.relationship_with(speaker.agent_id).log_line(line)
        if is_verbose():
            log_llm(f"  {LOG_TAG_LLM} [Speech] {speaker.name} -> {listener.name}: {text}")
        safe_call("on_speech", self.on_speech, speaker, listener, text)

    def update_relationship(self, a: Agent, b: Agent, action: str) -> int:
        """Apply one interaction to both sides of the pair; returns the affinity change."""
        change = AFFINITY_BY_ACTION.get(action, DEFAULT_AFFINITY)
        change += sum(1 for agent in (a, b) if agent.personality.friendliness > FRIENDLY_TRAIT)
        tick = self._tick()
        for agent, other in ((a, b), (b, a)):
            relationship = agent.relationship_with(other.agent_id)
            relationship.affinity += change
            relationship.interactions += 1
            relationship.last_interaction_tick = tick
            agent.mood = agent.mood + CONVERSATION_MOOD_BONUS
        return change


__all__ = [
    "Conversation",
    "ConversationManager",
    "SpeechCallback",
    "ConversationCallback",
    "AFFINITY_BY_ACTION",
]
