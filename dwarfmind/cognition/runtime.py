"""Cognition runtime for one colony.

:class:`ColonyMind` bundles the event bus, clock, timers, generation queue,
health probe, cooldowns, and both engines. Everything that used to be a
process-wide map lives on an instance, so two colonies (or two tests) never
share state.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import Config
from ..events import EventBus
from ..local_llm import OllamaBackend
from ..logging_utils import LOG_TAG_INFO, log_info
from ..schemas import WorldState
from .conversations import ConversationCallback, ConversationManager, SpeechCallback
from .cooldowns import CooldownTracker
from .health import HealthProbe
from .queue import GenerationBackend, GenerationQueue
from .scheduler import Clock, SystemClock, TimerQueue
from .settings import ThoughtSettings
from .thoughts import SidebarCallback, ThoughtCallback, ThoughtEngine


@dataclass
class MindCallbacks:
    """UI hooks. Any of them may be None; failures are logged and ignored."""

    on_thought: Optional[ThoughtCallback] = None
    on_speech: Optional[SpeechCallback] = None
    on_sidebar_update: Optional[SidebarCallback] = None
    on_conversation_end: Optional[ConversationCallback] = None


class ColonyMind:
    """Owns the thought and conversation engines for a single simulation.

    Examples:
        Offline, deterministic (tests):
            clock = ManualClock()
            mind = ColonyMind(backend=FakeBackend(), probe=HealthProbe.fixed(False),
                              clock=clock, rng=random.Random(1))

        Against a local Ollama server:
            mind = ColonyMind.from_config()
    """

    def __init__(
        self,
        *,
        backend: Optional[GenerationBackend] = None,
        queue: Optional[GenerationQueue] = None,
        probe: Optional[HealthProbe] = None,
        bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
        settings: Optional[ThoughtSettings] = None,
        rng: Optional[random.Random] = None,
        callbacks: Optional[MindCallbacks] = None,
        world: Optional[WorldState] = None,
    ) -> None:
        self.clock: Clock = clock or SystemClock()
        self.bus = bus or EventBus()
        self.settings = settings or ThoughtSettings.from_config()
        self.rng = rng or random.Random()
        self.callbacks = callbacks or MindCallbacks()
        self.timers = TimerQueue(self.clock)

        if queue is None:
            backend = backend or OllamaBackend(
                model=Config.OLLAMA_MODEL,
                base_url=Config.OLLAMA_BASE_URL,
                request_timeout=Config.GENERATION_TIMEOUT_SECONDS,
                max_attempts=Config.GENERATION_MAX_ATTEMPTS,
            )
            queue = GenerationQueue(
                backend,
                concurrency=Config.GENERATION_CONCURRENCY,
                timeout=Config.GENERATION_TIMEOUT_SECONDS,
            )
        self.queue = queue

        if probe is None:
            check = getattr(self.queue.backend, "check_connection", None)
            probe = HealthProbe(
                (lambda: check(Config.HEALTH_TIMEOUT_SECONDS)) if check is not None else None,
                clock=self.clock,
                cache_seconds=Config.HEALTH_CACHE_SECONDS,
            )
        self.probe = probe

        self.cooldowns = CooldownTracker(
            clock=self.clock,
            thought_window=self.settings.thought_cooldown,
            meeting_window=self.settings.meeting_cooldown,
        )
        self.conversations = ConversationManager(
            queue=self.queue,
            timers=self.timers,
            probe=self.probe,
            settings=self.settings,
            rng=self.rng,
            on_speech=self.callbacks.on_speech,
            on_conversation_end=self.callbacks.on_conversation_end,
        )
        self.thoughts = ThoughtEngine(
            bus=self.bus,
            queue=self.queue,
            timers=self.timers,
            cooldowns=self.cooldowns,
            probe=self.probe,
            settings=self.settings,
            rng=self.rng,
            on_thought=self.callbacks.on_thought,
            on_sidebar_update=self.callbacks.on_sidebar_update,
        )
        self.thoughts.conversations = self.conversations
        if world is not None:
            self.attach(world)

    @classmethod
    def from_config(cls, **overrides: Any) -> "ColonyMind":
        """Build a mind wired to the Ollama server named in :class:`Config`."""
        Config.validate()
        return cls(**overrides)

    def attach(self, world: WorldState) -> None:
        """Point both engines at ``world``."""
        self.thoughts.world = world
        self.conversations.world = world

    def start(self, *, background: bool = True) -> None:
        self.thoughts.start(background=background)
        log_info(f"  {LOG_TAG_INFO} [Mind] Thought engine started")

    async def stop(self) -> None:
        """Unsubscribe, drop pending timers, and fail queued generations."""
        self.thoughts.stop()
        self.timers.cancel_all()
        await self.timers.wait_idle()
        await self.queue.close()

    async def pump(self) -> int:
        """Fire due timers. Called once per tick; never waits on generation."""
        return await self.timers.run_due()

    async def settle(self) -> None:
        """Wait for every in-flight thought or conversation step to finish."""
        await self.timers.wait_idle()

    def status(self) -> Dict[str, Any]:
        status = self.thoughts.status()
        status["conversations"] = len(self.conversations.active)
        status["timers"] = self.timers.pending()
        return status


__all__ = ["ColonyMind", "MindCallbacks"]
