"""Cognition layer: generation queue, fallbacks, thoughts, and conversations."""

from .conversations import Conversation, ConversationManager
from .cooldowns import CooldownTracker, pair_key
from .fallbacks import (
    SPEECH_FALLBACKS,
    THOUGHT_FALLBACKS,
    clean_response,
    fallback_speech,
    fallback_thought,
)
from .health import HealthProbe
from .prompts import DEFAULT_PROMPTS, PromptLibrary, PromptTemplate, speech_request, thought_request
from .queue import (
    GenerationBackend,
    GenerationFailure,
    GenerationOutcome,
    GenerationQueue,
    QueueStatus,
)
from .renderers import RenderedPrompt, build_speech_prompt, build_thought_prompt, render_prompt
from .runtime import ColonyMind, MindCallbacks
from .scheduler import Clock, ManualClock, SystemClock, TimerHandle, TimerQueue
from .settings import ThoughtSettings
from .thoughts import ThoughtEngine

__all__ = [
    "Conversation",
    "ConversationManager",
    "CooldownTracker",
    "pair_key",
    "SPEECH_FALLBACKS",
    "THOUGHT_FALLBACKS",
    "clean_response",
    "fallback_speech",
    "fallback_thought",
    "HealthProbe",
    "DEFAULT_PROMPTS",
    "PromptLibrary",
    "PromptTemplate",
    "speech_request",
    "thought_request",
    "GenerationBackend",
    "GenerationFailure",
    "GenerationOutcome",
    "GenerationQueue",
    "QueueStatus",
    "RenderedPrompt",
    "build_speech_prompt",
    "build_thought_prompt",
    "render_prompt",
    "ColonyMind",
    "MindCallbacks",
    "Clock",
    "ManualClock",
    "SystemClock",
    "TimerHandle",
    "TimerQueue",
    "ThoughtSettings",
    "ThoughtEngine",
]
