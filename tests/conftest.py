"""Shared fixtures: a scripted content service and game-session factories."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence

import pytest

from taleweaver.content.base import ContentService, ContentServiceError, GeneratedEntity
from taleweaver.content.models import (
    ContextSnapshot,
    EntityKind,
    EventDecision,
    EventResolution,
    NarrativeKind,
    NarrativeOutcome,
    OpeningScene,
    ParsedCommand,
)
from taleweaver.engine.director import DirectorCadence
from taleweaver.game import GameSession
from taleweaver.schemas import (
    ActiveEvent,
    Character,
    DirectorAnalysis,
    DirectorDirective,
    EventEffects,
    LocationData,
    NPC,
    PlayerInitiatedAction,
    PotentialDiscovery,
)


def make_location(name: str = "Quiet Clearing", exits: Sequence[str] = ("north", "south", "east", "west"), **kwargs) -> LocationData:
    return LocationData(
        name=name,
        description=kwargs.pop("description", f"The {name.lower()} is still."),
        valid_exits=list(exits),
        **kwargs,
    )


class FakeContentService(ContentService):
    """Content service that replays queued answers and records every call.

    Each queue is consumed in order; an empty queue falls back to a neutral
    default. Operation names listed in ``failures`` raise ContentServiceError.
    """

    def __init__(self) -> None:
        self.character = Character(name="Ari Vale", concept="a wandering cartographer")
        self.intents: Deque[ParsedCommand] = deque()
        self.locations: Deque[LocationData] = deque()
        self.entities: Deque[GeneratedEntity] = deque()
        self.entity_batches: Deque[List[GeneratedEntity]] = deque()
        self.narratives: Deque[NarrativeOutcome] = deque()
        self.decisions: Deque[EventDecision] = deque()
        self.event_effects: Deque[EventEffects] = deque()
        self.consequences: Deque[EventEffects] = deque()
        self.resolutions: Deque[EventResolution] = deque()
        self.lead_matches: Deque[Optional[str]] = deque()
        self.analyses: Deque[Optional[DirectorAnalysis]] = deque()
        self.opening = OpeningScene(narration="The road begins here.")
        self.image_handle: Optional[str] = None
        self.failures: set[str] = set()
        self.calls: List[tuple[str, Any]] = []
        self.before_parse: Optional[Callable[[], Any]] = None

    def _record(self, operation: str, detail: Any = None) -> None:
        self.calls.append((operation, detail))
        if operation in self.failures:
            raise ContentServiceError(operation, RuntimeError("scripted failure"))

    def count(self, operation: str, detail: Any = None) -> int:
        return sum(
            1 for op, d in self.calls if op == operation and (detail is None or d == detail)
        )

    async def parse_intent(self, raw_text: str, context: ContextSnapshot) -> ParsedCommand:
        if self.before_parse is not None:
            await self.before_parse()
        self._record("parse_intent", raw_text)
        if not self.intents:
            raise AssertionError(f"No scripted intent for {raw_text!r}")
        return self.intents.popleft()

    async def generate_narrative_outcome(
        self,
        kind: NarrativeKind,
        subject: Dict[str, Any],
        context: ContextSnapshot,
    ) -> NarrativeOutcome:
        self._record("generate_narrative_outcome", kind)
        if self.narratives:
            return self.narratives.popleft()
        return NarrativeOutcome(narration=f"Something happens ({kind.value}).")

    async def generate_entity(
        self,
        kind: EntityKind,
        context: ContextSnapshot,
        brief: str = "",
    ) -> GeneratedEntity:
        self._record("generate_entity", kind)
        if kind is EntityKind.CHARACTER:
            return self.character.model_copy(deep=True)
        if kind is EntityKind.LOCATION:
            if self.locations:
                return self.locations.popleft()
            return make_location()
        if not self.entities:
            raise AssertionError(f"No scripted {kind.value}")
        return self.entities.popleft()

    async def generate_entities(
        self,
        kind: EntityKind,
        context: ContextSnapshot,
        brief: str = "",
        max_count: int = 3,
    ) -> List[GeneratedEntity]:
        self._record("generate_entities", kind)
        if self.entity_batches:
            return list(self.entity_batches.popleft())[:max_count]
        return []

    async def decide_event_trigger(self, trigger: str, context: ContextSnapshot) -> EventDecision:
        self._record("decide_event_trigger", trigger)
        if self.decisions:
            return self.decisions.popleft()
        return EventDecision(should_trigger=False)

    async def generate_event_effects(
        self,
        concept: str,
        intensity: str,
        context: ContextSnapshot,
    ) -> EventEffects:
        self._record("generate_event_effects", concept)
        return self.event_effects.popleft()

    async def generate_action_consequences(
        self,
        action: PlayerInitiatedAction,
        target: Optional[NPC],
        context: ContextSnapshot,
    ) -> EventEffects:
        self._record("generate_action_consequences", action.target_npc_id)
        return self.consequences.popleft()

    async def check_event_resolution(
        self,
        event: ActiveEvent,
        player_input: str,
        context: ContextSnapshot,
    ) -> EventResolution:
        self._record("check_event_resolution", player_input)
        if self.resolutions:
            return self.resolutions.popleft()
        return EventResolution()

    async def link_entity_to_lead(
        self,
        name: str,
        description: str,
        entity_type: str,
        leads: Sequence[PotentialDiscovery],
    ) -> Optional[str]:
        self._record("link_entity_to_lead", name)
        if self.lead_matches:
            return self.lead_matches.popleft()
        return None

    async def analyze_for_directive(
        self,
        history: Sequence[str],
        context: ContextSnapshot,
        previous: Optional[DirectorDirective],
    ) -> Optional[DirectorAnalysis]:
        self._record("analyze_for_directive", len(history))
        if self.analyses:
            return self.analyses.popleft()
        return None

    async def generate_image(self, visual_hint: str, style: str) -> Optional[str]:
        self._record("generate_image", visual_hint)
        return self.image_handle

    async def generate_opening(
        self,
        character: Character,
        location: LocationData,
        context: ContextSnapshot,
    ) -> OpeningScene:
        self._record("generate_opening", character.name)
        return self.opening


@pytest.fixture
def content() -> FakeContentService:
    return FakeContentService()


@pytest.fixture
def start_session(content):
    """Factory that starts a game on the fake service and clears its call log."""

    async def _start(start_location: Optional[LocationData] = None, **kwargs) -> GameSession:
        if start_location is not None:
            content.locations.appendleft(start_location)
        kwargs.setdefault("cadence", DirectorCadence(command_interval=1000, min_seconds=10_000))
        session = GameSession(content, **kwargs)
        await session.start_new_game("a wandering cartographer", "a quiet clearing")
        content.calls.clear()
        return session

    return _start


@pytest.fixture
def command(content):
    """Queue a parsed intent for the next submitted command."""

    def _queue(action: str, *targets: str, **parameters) -> ParsedCommand:
        parsed = ParsedCommand(action=action, targets=list(targets), parameters=parameters)
        content.intents.append(parsed)
        return parsed

    return _queue


@pytest.fixture
def gate_blocker(content):
    """Make parse_intent wait on an asyncio.Event so a command stays in flight."""

    def _install() -> asyncio.Event:
        release = asyncio.Event()

        async def _wait() -> None:
            await release.wait()

        content.before_parse = _wait
        return release

    return _install
