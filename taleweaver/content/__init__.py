"""Content service seam: interface, request/response models and prompts."""

from .base import ContentService, ContentServiceError
from .models import (
    CommandParameters,
    ContextSnapshot,
    EntityKind,
    EventDecision,
    EventResolution,
    NarrativeKind,
    NarrativeOutcome,
    OpeningScene,
    ParsedCommand,
)

__all__ = [
    "CommandParameters",
    "ContentService",
    "ContentServiceError",
    "ContextSnapshot",
    "EntityKind",
    "EventDecision",
    "EventResolution",
    "NarrativeKind",
    "NarrativeOutcome",
    "OpeningScene",
    "ParsedCommand",
]
