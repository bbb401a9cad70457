"""Shared plumbing for action handlers."""

from __future__ import annotations

from typing import Awaitable, Callable

from taleweaver.content.models import ParsedCommand
from taleweaver.store import WorldStateStore

from ..context import EngineServices
from ..events import EventEngine

ActionHandler = Callable[[ParsedCommand, str], Awaitable[None]]


class HandlerGroup:
    """Base for a family of handlers sharing services and the event engine.

    Each public coroutine has the signature ``(command, raw_text) -> None`` and
    reports to the player only through the game log.
    """

    def __init__(self, services: EngineServices, events: EventEngine) -> None:
        self.services = services
        self.events = events

    @property
    def store(self) -> WorldStateStore:
        return self.services.store

    def blocked_by_defeat(self, message: str) -> bool:
        """Log ``message`` and return True when the character is defeated."""
        character = self.store.character
        if character is not None and character.is_defeated:
            self.store.log("system", message)
            return True
        return False

    def spend_energy(self, amount: int) -> None:
        if amount > 0:
            self.store.consume_energy(amount)

    def award_experience(self, skill: str, amount: int) -> None:
        character = self.store.character
        if character is not None and character.skill(skill) is not None:
            self.store.gain_skill_experience(skill, amount)

    async def trigger(self, slug: str) -> None:
        await self.events.attempt_unexpected_event(slug)


def slug_part(text: str) -> str:
    return text.strip().lower().replace(" ", "_")
