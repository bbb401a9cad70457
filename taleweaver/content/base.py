"""
ContentService interface: the seam to the generative collaborator.

The engine never talks to a model directly. Every suspension point in a turn
(intent parsing, narration, entity generation, event decisions, lead matching,
director analysis, images) goes through one of these coroutines. Implementations
hold no game state and apply no business rules; they turn structured requests
into structured results.

Implementations:
- LLMContentService: mirascope/Ollama backed (taleweaver.content.llm_service)
- Scripted fakes in tests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from taleweaver.schemas import (
    ActiveEvent,
    Character,
    DirectorAnalysis,
    DirectorDirective,
    EventEffects,
    ItemSuggestion,
    LocationData,
    NPC,
    NpcSuggestion,
    PlayerInitiatedAction,
    PotentialDiscovery,
)

from .models import (
    ContextSnapshot,
    EntityKind,
    EventDecision,
    EventResolution,
    NarrativeKind,
    NarrativeOutcome,
    OpeningScene,
    ParsedCommand,
)

GeneratedEntity = Union[Character, LocationData, ItemSuggestion, NpcSuggestion]


class ContentServiceError(Exception):
    """Raised when the generation collaborator fails to produce a usable result.

    Remediation tips:
    - Check provider credentials (OPENAI_API_KEY / ANTHROPIC_API_KEY) or that
      Ollama is reachable at OLLAMA_BASE_URL
    - Raise LLM_MAX_ATTEMPTS if the model keeps returning malformed JSON
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause else "no result"
        super().__init__(f"{operation} failed ({detail})")


class ContentService(ABC):
    """Abstract generation collaborator consumed by the engine."""

    @abstractmethod
    async def parse_intent(self, raw_text: str, context: ContextSnapshot) -> ParsedCommand:
        """Turn free text into a structured intent (never mutates anything)."""

    @abstractmethod
    async def generate_narrative_outcome(
        self,
        kind: NarrativeKind,
        subject: Dict[str, Any],
        context: ContextSnapshot,
    ) -> NarrativeOutcome:
        """Narrate dialogue, pickups, item use, crafting, examination, movement, gifts or requests."""

    @abstractmethod
    async def generate_entity(
        self,
        kind: EntityKind,
        context: ContextSnapshot,
        brief: str = "",
    ) -> GeneratedEntity:
        """Generate one character, location, item or NPC."""

    @abstractmethod
    async def generate_entities(
        self,
        kind: EntityKind,
        context: ContextSnapshot,
        brief: str = "",
        max_count: int = 3,
    ) -> List[GeneratedEntity]:
        """Generate zero or more items/NPCs for an area search."""

    @abstractmethod
    async def decide_event_trigger(self, trigger: str, context: ContextSnapshot) -> EventDecision:
        ...

    @abstractmethod
    async def generate_event_effects(
        self,
        concept: str,
        intensity: str,
        context: ContextSnapshot,
    ) -> EventEffects:
        """Generate the effect bundle for an event concept.

        ``context.director_guidance`` carries the active directive bias, if any.
        """

    @abstractmethod
    async def generate_action_consequences(
        self,
        action: PlayerInitiatedAction,
        target: Optional[NPC],
        context: ContextSnapshot,
    ) -> EventEffects:
        """Consequences of a deliberate player escalation (no trigger gate)."""

    @abstractmethod
    async def check_event_resolution(
        self,
        event: ActiveEvent,
        player_input: str,
        context: ContextSnapshot,
    ) -> EventResolution:
        ...

    @abstractmethod
    async def link_entity_to_lead(
        self,
        name: str,
        description: str,
        entity_type: str,
        leads: Sequence[PotentialDiscovery],
    ) -> Optional[str]:
        """Return the id of at most one lead in ``leads`` the entity fulfils."""

    @abstractmethod
    async def analyze_for_directive(
        self,
        history: Sequence[str],
        context: ContextSnapshot,
        previous: Optional[DirectorDirective],
    ) -> Optional[DirectorAnalysis]:
        ...

    @abstractmethod
    async def generate_image(self, visual_hint: str, style: str) -> Optional[str]:
        """Best-effort illustration; None is a valid answer."""

    @abstractmethod
    async def generate_opening(
        self,
        character: Character,
        location: LocationData,
        context: ContextSnapshot,
    ) -> OpeningScene:
        """Opening narration and initial leads for a new game."""
