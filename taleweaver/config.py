"""
Taleweaver Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


class Config:
    """Application configuration loaded from environment variables."""

    # LLM Provider Configuration
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openai")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-5-nano")
    LLM_MAX_ATTEMPTS: int = int(os.getenv("LLM_MAX_ATTEMPTS", "3"))
    # Unset means content calls may take as long as the provider needs.
    LLM_TIMEOUT_SECONDS: float | None = _optional_float("LLM_TIMEOUT_SECONDS")

    # API Keys
    ANTHROPIC_API_KEY: str | None = os.getenv("ANTHROPIC_API_KEY")
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")

    # Local models served by Ollama (LLM_PROVIDER=ollama)
    OLLAMA_BASE_URL: str | None = os.getenv("OLLAMA_BASE_URL")

    # Director cadence
    DIRECTOR_COMMAND_INTERVAL: int = int(os.getenv("DIRECTOR_COMMAND_INTERVAL", "21"))
    DIRECTOR_MIN_SECONDS: float = float(os.getenv("DIRECTOR_MIN_SECONDS", "360"))

    # Saved games (JsonPersistence)
    SAVE_DIR: Path = Path(os.getenv("SAVE_DIR", "saved_games"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if required values are missing."""
        provider = cls.LLM_PROVIDER.lower()

        if provider == "anthropic" and not cls.ANTHROPIC_API_KEY:
            raise ValueError(
                "ANTHROPIC_API_KEY is required when using the 'anthropic' provider"
            )

        if provider == "openai" and not cls.OPENAI_API_KEY:
            raise ValueError(
                "OPENAI_API_KEY is required when using the 'openai' provider. "
                "For local models, set LLM_PROVIDER=ollama instead."
            )

        if cls.LLM_MAX_ATTEMPTS < 1:
            raise ValueError("LLM_MAX_ATTEMPTS must be >= 1")

        if cls.DIRECTOR_COMMAND_INTERVAL < 1:
            raise ValueError("DIRECTOR_COMMAND_INTERVAL must be >= 1")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        timeout = (
            f"{cls.LLM_TIMEOUT_SECONDS:g}s" if cls.LLM_TIMEOUT_SECONDS else "none"
        )
        lines = [
            "Taleweaver Configuration:",
            f"  LLM Provider: {cls.LLM_PROVIDER}",
            f"  LLM Model: {cls.LLM_MODEL}",
            f"  LLM Attempts: {cls.LLM_MAX_ATTEMPTS}",
            f"  LLM Timeout: {timeout}",
            f"  Director Cadence: every {cls.DIRECTOR_COMMAND_INTERVAL} commands, "
            f"at least {cls.DIRECTOR_MIN_SECONDS:g}s apart",
            f"  Save Directory: {cls.SAVE_DIR}",
            f"  Log Level: {cls.LOG_LEVEL}",
        ]
        return "\n".join(lines)
