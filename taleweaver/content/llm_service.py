"""
LLM-backed ContentService.

Each entry point renders its prompt template, calls the configured provider
through ``call_llm_with_retries`` and returns the validated pydantic model.
Any failure (provider, network, exhausted schema retries) is wrapped in
ContentServiceError so the engine can treat it as a generation failure.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from taleweaver.config import Config
from taleweaver.engine.actions import ACTION_ALIASES
from taleweaver.llm_utils import call_llm_with_retries
from taleweaver.logging_utils import log_error, log_llm
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

from .base import ContentService, ContentServiceError, GeneratedEntity
from .models import (
    CharacterDraft,
    ContextSnapshot,
    EntityKind,
    EventDecision,
    EventResolution,
    ItemBatch,
    LeadMatch,
    NarrativeKind,
    NarrativeOutcome,
    NpcBatch,
    OpeningScene,
    ParsedCommand,
)
from .prompts import DEFAULT_PROMPTS, PromptLibrary
from .renderers import render_prompt

ModelT = TypeVar("ModelT", bound=BaseModel)

_SINGLE_ENTITY_MODELS: Dict[EntityKind, Type[BaseModel]] = {
    EntityKind.CHARACTER: CharacterDraft,
    EntityKind.LOCATION: LocationData,
    EntityKind.ITEM: ItemSuggestion,
    EntityKind.NPC: NpcSuggestion,
}


def _dump(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json(indent=2)
    return json.dumps(value, indent=2, default=str)


class LLMContentService(ContentService):
    """Content service that asks an LLM for every structured result."""

    def __init__(
        self,
        *,
        llm_provider: Optional[str] = None,
        llm_model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        prompts: PromptLibrary = DEFAULT_PROMPTS,
    ) -> None:
        self.llm_provider = llm_provider or Config.LLM_PROVIDER
        self.llm_model = llm_model or Config.LLM_MODEL
        self.max_attempts = max_attempts or Config.LLM_MAX_ATTEMPTS
        self.timeout = timeout if timeout is not None else Config.LLM_TIMEOUT_SECONDS
        self.base_url = base_url or Config.OLLAMA_BASE_URL
        self.prompts = prompts

    async def _call(
        self,
        operation: str,
        template_name: str,
        response_model: Type[ModelT],
        context: Optional[ContextSnapshot] = None,
        extra: Optional[Mapping[str, str]] = None,
    ) -> ModelT:
        prompt = render_prompt(self.prompts.get(template_name), context, extra)
        log_llm("Content", f"{operation} via {self.llm_provider}/{self.llm_model}")
        try:
            return await call_llm_with_retries(
                system_prompt=prompt.system,
                user_prompt=prompt.user,
                llm_provider=self.llm_provider,
                llm_model=self.llm_model,
                response_model=response_model,
                max_attempts=self.max_attempts,
                timeout=self.timeout,
                base_url=self.base_url,
            )
        except Exception as exc:
            log_error("Content", f"{operation} failed: {exc}")
            raise ContentServiceError(operation, exc) from exc

    async def parse_intent(self, raw_text: str, context: ContextSnapshot) -> ParsedCommand:
        return await self._call(
            "parse_intent",
            "parse_intent",
            ParsedCommand,
            context,
            {"raw_text": raw_text, "actions": ", ".join(sorted(ACTION_ALIASES))},
        )

    async def generate_narrative_outcome(
        self,
        kind: NarrativeKind,
        subject: Dict[str, Any],
        context: ContextSnapshot,
    ) -> NarrativeOutcome:
        return await self._call(
            f"narrative:{kind.value}",
            "narrative_outcome",
            NarrativeOutcome,
            context,
            {"kind": kind.value, "subject_json": _dump(subject)},
        )

    async def generate_entity(
        self,
        kind: EntityKind,
        context: ContextSnapshot,
        brief: str = "",
    ) -> GeneratedEntity:
        result = await self._call(
            f"entity:{kind.value}",
            "generate_entity",
            _SINGLE_ENTITY_MODELS[kind],
            context,
            {"kind": kind.value, "brief": brief or "none"},
        )
        if isinstance(result, CharacterDraft):
            return result.to_character()
        return result

    async def generate_entities(
        self,
        kind: EntityKind,
        context: ContextSnapshot,
        brief: str = "",
        max_count: int = 3,
    ) -> List[GeneratedEntity]:
        extra = {"kind": kind.value, "brief": brief or "none", "max_count": str(max_count)}
        if kind is EntityKind.ITEM:
            batch = await self._call("entities:item", "generate_entities", ItemBatch, context, extra)
            return list(batch.items[:max_count])
        if kind is EntityKind.NPC:
            npcs = await self._call("entities:npc", "generate_entities", NpcBatch, context, extra)
            return list(npcs.npcs[:max_count])
        raise ValueError(f"Batch generation is not supported for {kind.value}")

    async def decide_event_trigger(self, trigger: str, context: ContextSnapshot) -> EventDecision:
        return await self._call(
            "decide_event_trigger", "event_trigger", EventDecision, context, {"trigger": trigger}
        )

    async def generate_event_effects(
        self,
        concept: str,
        intensity: str,
        context: ContextSnapshot,
    ) -> EventEffects:
        return await self._call(
            "generate_event_effects",
            "event_effects",
            EventEffects,
            context,
            {"concept": concept, "intensity": intensity},
        )

    async def generate_action_consequences(
        self,
        action: PlayerInitiatedAction,
        target: Optional[NPC],
        context: ContextSnapshot,
    ) -> EventEffects:
        return await self._call(
            "generate_action_consequences",
            "action_consequences",
            EventEffects,
            context,
            {"action_json": _dump(action), "target_json": _dump(target) if target else "none"},
        )

    async def check_event_resolution(
        self,
        event: ActiveEvent,
        player_input: str,
        context: ContextSnapshot,
    ) -> EventResolution:
        return await self._call(
            "check_event_resolution",
            "event_resolution",
            EventResolution,
            context,
            {"event_json": _dump(event.effects), "player_input": player_input},
        )

    async def link_entity_to_lead(
        self,
        name: str,
        description: str,
        entity_type: str,
        leads: Sequence[PotentialDiscovery],
    ) -> Optional[str]:
        if not leads:
            return None
        leads_payload = [
            {"id": lead.id, "name": lead.name, "hint": lead.description_hint, "snippet": lead.source_text_snippet}
            for lead in leads
        ]
        match = await self._call(
            "link_entity_to_lead",
            "lead_link",
            LeadMatch,
            None,
            {
                "entity_type": entity_type,
                "entity_json": _dump({"name": name, "description": description}),
                "leads_json": _dump(leads_payload),
            },
        )
        known_ids = {lead.id for lead in leads}
        return match.lead_id if match.lead_id in known_ids else None

    async def analyze_for_directive(
        self,
        history: Sequence[str],
        context: ContextSnapshot,
        previous: Optional[DirectorDirective],
    ) -> Optional[DirectorAnalysis]:
        return await self._call(
            "analyze_for_directive",
            "director",
            DirectorAnalysis,
            context,
            {
                "history": "\n".join(f"- {line}" for line in history) or "(no history yet)",
                "previous_directive": _dump(previous) if previous else "none",
            },
        )

    async def generate_image(self, visual_hint: str, style: str) -> Optional[str]:
        # Text providers have no image endpoint; callers treat None as "no visual".
        return None

    async def generate_opening(
        self,
        character: Character,
        location: LocationData,
        context: ContextSnapshot,
    ) -> OpeningScene:
        return await self._call(
            "generate_opening",
            "opening",
            OpeningScene,
            context,
            {"character_json": _dump(character), "location_json": _dump(location)},
        )
