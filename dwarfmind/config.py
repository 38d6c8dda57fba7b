"""
Dwarfmind Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Local inference service (Ollama /api/generate)
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://127.0.0.1:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "gemma3:latest")

    # Generation queue
    GENERATION_CONCURRENCY: int = int(os.getenv("GENERATION_CONCURRENCY", "10"))
    GENERATION_TIMEOUT_SECONDS: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "5"))
    # Attempts per request for network-level failures, all inside the timeout above
    GENERATION_MAX_ATTEMPTS: int = int(os.getenv("GENERATION_MAX_ATTEMPTS", "2"))

    # Health probe against /api/tags
    HEALTH_TIMEOUT_SECONDS: float = float(os.getenv("HEALTH_TIMEOUT_SECONDS", "2"))
    HEALTH_CACHE_SECONDS: float = float(os.getenv("HEALTH_CACHE_SECONDS", "30"))

    # Thought & conversation engine (wall-clock seconds)
    THOUGHT_COOLDOWN_SECONDS: float = float(os.getenv("THOUGHT_COOLDOWN_SECONDS", "12"))
    MEETING_COOLDOWN_SECONDS: float = float(os.getenv("MEETING_COOLDOWN_SECONDS", "15"))
    CONVERSATION_CHANCE: float = float(os.getenv("CONVERSATION_CHANCE", "0.7"))
    MAX_CONVERSATION_TURNS: int = int(os.getenv("MAX_CONVERSATION_TURNS", "6"))
    INTERACTION_DISTANCE: int = int(os.getenv("INTERACTION_DISTANCE", "4"))
    BACKGROUND_THOUGHT_INTERVAL_SECONDS: float = float(
        os.getenv("BACKGROUND_THOUGHT_INTERVAL_SECONDS", "12")
    )

    # Decision engine (simulation ticks)
    TASK_RECONSIDER_INTERVAL: int = int(os.getenv("TASK_RECONSIDER_INTERVAL", "20"))
    DEFAULT_TICK_COUNT: int = int(os.getenv("DEFAULT_TICK_COUNT", "200"))
    TICK_DURATION_SECONDS: float = float(os.getenv("TICK_DURATION_SECONDS", "0.25"))

    # Logging: DEBUG turns on verbose tracing, WARNING and ERROR keep only failures
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for values the engines cannot run with."""
        if cls.GENERATION_CONCURRENCY < 1:
            raise ValueError(
                "GENERATION_CONCURRENCY must be at least 1; "
                "the generation queue would never dispatch a request."
            )
        if cls.GENERATION_TIMEOUT_SECONDS <= 0:
            raise ValueError("GENERATION_TIMEOUT_SECONDS must be positive.")
        if cls.GENERATION_MAX_ATTEMPTS < 1:
            raise ValueError("GENERATION_MAX_ATTEMPTS must be at least 1.")
        if not 0.0 <= cls.CONVERSATION_CHANCE <= 1.0:
            raise ValueError(
                f"CONVERSATION_CHANCE must be between 0 and 1 (got {cls.CONVERSATION_CHANCE})."
            )
        if cls.MAX_CONVERSATION_TURNS < 1:
            raise ValueError("MAX_CONVERSATION_TURNS must be at least 1.")
        if cls.TASK_RECONSIDER_INTERVAL < 1:
            raise ValueError("TASK_RECONSIDER_INTERVAL must be at least 1 tick.")
        if cls.LOG_LEVEL.upper() not in cls.LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {', '.join(cls.LOG_LEVELS)} (got {cls.LOG_LEVEL})."
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Dwarfmind Configuration:",
            f"  Ollama: {cls.OLLAMA_BASE_URL} ({cls.OLLAMA_MODEL})",
            f"  Generation: {cls.GENERATION_CONCURRENCY} slots, {cls.GENERATION_TIMEOUT_SECONDS}s timeout",
            f"  Thought cooldown: {cls.THOUGHT_COOLDOWN_SECONDS}s, meeting cooldown: {cls.MEETING_COOLDOWN_SECONDS}s",
            f"  Conversations: chance {cls.CONVERSATION_CHANCE}, max {cls.MAX_CONVERSATION_TURNS} turns",
            f"  Default Ticks: {cls.DEFAULT_TICK_COUNT}",
            f"  Tick Duration: {cls.TICK_DURATION_SECONDS}s",
            f"  Log Level: {cls.LOG_LEVEL}",
        ]
        return "\n".join(lines)
