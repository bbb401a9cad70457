"""Shared services handed to every engine component, plus state-reading helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TypeVar

from taleweaver.content.base import ContentService, ContentServiceError
from taleweaver.content.models import ContextSnapshot
from taleweaver.discovery import DiscoveryLedger
from taleweaver.logging_utils import log_error
from taleweaver.memory import MemoryStrategy, RecentMemory
from taleweaver.scheduling import TurnScheduler
from taleweaver.schemas import NPC, RARITY_ORDER, Item, TargetSystem
from taleweaver.store import WorldStateStore

RECENT_LOG_ENTRIES = 5

NamedT = TypeVar("NamedT", Item, NPC)


def is_npc_visible(npc: NPC, event_active: bool) -> bool:
    """During an event only event-spawned or explicitly unhidden NPCs are visible."""
    if not event_active:
        return True
    return npc.is_event_spawned or npc.is_hidden_during_event is False


def find_by_name(entities: Sequence[NamedT], name: Optional[str]) -> Optional[NamedT]:
    """Exact (case-insensitive) name or id match first, then substring match."""
    if not name:
        return None
    wanted = name.strip().lower()
    for entity in entities:
        if entity.id == name or entity.name.lower() == wanted:
            return entity
    for entity in entities:
        if wanted in entity.name.lower():
            return entity
    return None


def highest_rarity(rarities: Sequence[str]) -> str:
    ranked = [r for r in rarities if r in RARITY_ORDER]
    if not ranked:
        return "Common"
    return max(ranked, key=RARITY_ORDER.index)


@dataclass
class EngineServices:
    """Store, content seam and helpers shared by handlers, events and the director."""

    store: WorldStateStore
    content: ContentService
    ledger: DiscoveryLedger
    memory: MemoryStrategy = field(default_factory=RecentMemory)
    scheduler: TurnScheduler = field(default_factory=TurnScheduler)

    def visible_npcs(self) -> List[NPC]:
        event_active = self.store.is_event_active
        return [npc for npc in self.store.location_npcs or [] if is_npc_visible(npc, event_active)]

    def find_visible_npc(self, name: Optional[str]) -> Optional[NPC]:
        return find_by_name(self.visible_npcs(), name)

    def context(self, target: Optional[TargetSystem] = None) -> ContextSnapshot:
        """Assemble the snapshot sent with a content call.

        ``target`` selects which directive prompt enhancement biases the call.
        """
        store = self.store
        directive = store.directive
        guidance = directive.enhancement_for(target) if directive and target else None
        return ContextSnapshot(
            character=store.character,
            location=store.current_location,
            location_key=store.location_key,
            visible_items=store.location_items or [],
            visible_npcs=self.visible_npcs(),
            inventory=store.inventory,
            talking_to=store.talking_to,
            active_event=store.active_event,
            recent_log=[entry.text for entry in store.recent_log(RECENT_LOG_ENTRIES)],
            unresolved_leads=store.unresolved_leads(),
            memory_context=self.memory.context_string(store),
            director_focus=directive.current_game_focus.value if directive else None,
            director_guidance=guidance,
        )

    async def illustrate(self, visual_hint: str, style: str) -> Optional[str]:
        """Best-effort image; failures leave the visual absent."""
        if not visual_hint:
            return None
        try:
            return await self.content.generate_image(visual_hint, style)
        except ContentServiceError as exc:
            log_error("Images", f"Image generation failed: {exc}")
            return None

    @property
    def visual_style(self) -> str:
        character = self.store.character
        return character.visual_style if character else "Pixel Art"
