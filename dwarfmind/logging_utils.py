"""Logging utilities for colony simulations.

Color-codes console output so deterministic tick work can be told apart from
traffic to the local inference service.
"""

import os
from enum import Enum

from .config import Config


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Deterministic tick work (needs, decisions)
    YELLOW = "\033[93m"    # Generation requests (thoughts, speech)
    RED = "\033[91m"       # Failures and fallbacks
    GREEN = "\033[92m"     # Completions
    CYAN = "\033[96m"      # Info/metadata

    BOLD = "\033[1m"
    RESET = "\033[0m"


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if DWARFMIND_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("DWARFMIND_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def _level_enabled(level: str) -> bool:
    """True when ``level`` is at or above Config.LOG_LEVEL."""
    levels = Config.LOG_LEVELS
    configured = Config.LOG_LEVEL.upper()
    threshold = levels.index(configured) if configured in levels else levels.index("INFO")
    return levels.index(level) >= threshold


def is_verbose() -> bool:
    """True when DWARFMIND_VERBOSE is set to a truthy value or LOG_LEVEL is DEBUG."""
    if Config.LOG_LEVEL.upper() == "DEBUG":
        return True
    return os.getenv("DWARFMIND_VERBOSE", "").lower() in ("1", "true", "yes")


def debug_llm_enabled() -> bool:
    """True when DEBUG_LLM asks for prompt/response dumps."""
    return os.getenv("DEBUG_LLM", "").lower() in ("1", "true", "yes")


def log_deterministic(message: str) -> None:
    """Log a deterministic operation (blue)."""
    if not _level_enabled("INFO"):
        return
    print(colored(message, Color.BLUE))


def log_llm(message: str) -> None:
    """Log a generation request (yellow)."""
    if not _level_enabled("INFO"):
        return
    print(colored(message, Color.YELLOW))


def log_error(message: str) -> None:
    """Log an error or fallback (red)."""
    print(colored(message, Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    if not _level_enabled("INFO"):
        return
    print(colored(message, Color.GREEN))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    if not _level_enabled("INFO"):
        return
    print(colored(message, Color.CYAN))


# Markers for operation types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"
LOG_TAG_LLM = "[AI]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"
