"""Logging utilities for Taleweaver sessions.

Console output is color-coded so operators can tell deterministic engine work
apart from calls into the content service. Player-facing text goes to the
game log held by the world state store, not here.
"""

import os
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    BLUE = "\033[94m"      # Deterministic engine work (store, ledger, cadence)
    YELLOW = "\033[93m"    # Content service calls
    RED = "\033[91m"       # Errors and retries
    GREEN = "\033[92m"     # Success/completion
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
        Colorized text if TALEWEAVER_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("TALEWEAVER_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


# Markers for operation types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"
LOG_TAG_LLM = "[LLM]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"


# Thresholds for the LOG_LEVEL environment variable
LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


def log_enabled(level: str) -> bool:
    """True when ``level`` is at or above the LOG_LEVEL threshold (default INFO)."""
    threshold = LOG_LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), LOG_LEVELS["INFO"])
    return LOG_LEVELS[level] >= threshold


def log_deterministic(component: str, message: str) -> None:
    """Log deterministic engine work (blue)."""
    if log_enabled("INFO"):
        print(colored(f"  {LOG_TAG_DETERMINISTIC} [{component}] {message}", Color.BLUE))


def log_llm(component: str, message: str) -> None:
    """Log a content service call (yellow)."""
    if log_enabled("INFO"):
        print(colored(f"  {LOG_TAG_LLM} [{component}] {message}", Color.YELLOW))


def log_error(component: str, message: str) -> None:
    """Log an error or retry (red)."""
    if log_enabled("ERROR"):
        print(colored(f"  {LOG_TAG_ERROR} [{component}] {message}", Color.RED))


def log_success(component: str, message: str) -> None:
    """Log a success (green)."""
    if log_enabled("INFO"):
        print(colored(f"  {LOG_TAG_SUCCESS} [{component}] {message}", Color.GREEN))


def log_info(component: str, message: str) -> None:
    """Log metadata/info (cyan)."""
    if log_enabled("INFO"):
        print(colored(f"  {LOG_TAG_INFO} [{component}] {message}", Color.CYAN))
