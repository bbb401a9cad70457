"""Examining things and searching the current area."""

from __future__ import annotations

from typing import Any, Dict, List

from taleweaver.content.base import ContentServiceError
from taleweaver.content.models import EntityKind, NarrativeKind, ParsedCommand
from taleweaver.logging_utils import log_deterministic
from taleweaver.schemas import NPC, Item, ItemSuggestion, NpcSuggestion, TargetSystem

from ..context import find_by_name, highest_rarity
from .base import HandlerGroup, slug_part

SEARCH_ENERGY_COST = 1
MAX_ITEMS_PER_SEARCH = 3
MAX_NPCS_PER_SEARCH = 3


def _listing(entities: List[Any]) -> str:
    return ", ".join(f"{entity.name} ({entity.rarity})" for entity in entities)


class ExplorationHandlers(HandlerGroup):
    async def examine(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        target = command.parameters.examine_detail_target or command.first_target or "surroundings"

        subject: Dict[str, Any] = {"target": target}
        origin_id = store.location_key
        rarity = "Common"
        entity = (
            find_by_name(store.inventory, target)
            or find_by_name(store.location_items or [], target)
            or self.services.find_visible_npc(target)
        )
        if entity is not None:
            subject["entity"] = entity.model_dump(mode="json", exclude={"inventory"})
            origin_id = entity.id
            rarity = entity.rarity
        else:
            location = store.current_location
            subject["location"] = location.model_dump(mode="json") if location else None

        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.EXAMINATION, subject, self.services.context(TargetSystem.GAME_LOG_NARRATION)
            )
        except ContentServiceError as exc:
            store.log("error", f"Could not examine {target}: {exc}")
            return

        store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        self.services.ledger.add_leads(outcome.new_leads, origin_id, store.location_key)
        self.award_experience("Perception", 1)
        await self.trigger(f"examined_detail_{rarity.lower()}_{slug_part(target)}")

    async def discover_items(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        cached = store.location_items
        if cached is not None:
            log_deterministic("Exploration", f"Items at {store.location_key} already searched")
            if cached:
                store.log("narration", f"You recall seeing: {_listing(cached)}.")
            else:
                store.log("narration", "You recall that there was nothing of note here.")
            return
        if self.blocked_by_defeat("You are too weak to search the area."):
            return

        self.spend_energy(SEARCH_ENERGY_COST)
        try:
            suggestions = await self.services.content.generate_entities(
                EntityKind.ITEM,
                self.services.context(TargetSystem.ITEM_GENERATION),
                brief=command.first_target or "",
                max_count=MAX_ITEMS_PER_SEARCH,
            )
        except ContentServiceError as exc:
            store.log("error", f"Failed to search for items: {exc}")
            return

        items: List[Item] = [s.to_item() for s in suggestions if isinstance(s, ItemSuggestion)]
        for item in items:
            await self.services.ledger.link_entity_to_lead(item.id, item.name, item.description, "item")
        store.set_location_items(items)

        location = store.current_location
        if not items:
            store.log("narration", "You search the area but find nothing of note.")
            return
        for item in items:
            store.remember_entity(
                item.id, item.name, "item", item.rarity, item.description, f"Found at {location.name}"
            )
        store.log("narration", f"You find: {_listing(items)}.")
        self.award_experience("Perception", 2)
        rarity = highest_rarity([item.rarity for item in items])
        await self.trigger(f"discovered_items_{rarity.lower()}_{slug_part(location.name)}")

    async def discover_npcs(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if store.location_npcs is not None:
            log_deterministic("Exploration", f"NPCs at {store.location_key} already searched")
            visible = self.services.visible_npcs()
            if visible:
                store.log("narration", f"You recall seeing: {_listing(visible)}.")
            else:
                store.log("narration", "You recall that no one was around.")
            return
        if self.blocked_by_defeat("You are too weak to look for anyone."):
            return

        self.spend_energy(SEARCH_ENERGY_COST)
        try:
            suggestions = await self.services.content.generate_entities(
                EntityKind.NPC,
                self.services.context(TargetSystem.NPC_INTERACTION),
                brief=command.first_target or "",
                max_count=MAX_NPCS_PER_SEARCH,
            )
        except ContentServiceError as exc:
            store.log("error", f"Failed to look for people: {exc}")
            return

        npcs: List[NPC] = [s.to_npc() for s in suggestions if isinstance(s, NpcSuggestion)]
        for npc in npcs:
            await self.services.ledger.link_entity_to_lead(npc.id, npc.name, npc.description, "npc")
        store.set_location_npcs(npcs)

        location = store.current_location
        if not npcs:
            store.log("narration", "You look around but see no one.")
            return
        for npc in npcs:
            store.remember_entity(
                npc.id, npc.name, "npc", npc.rarity, npc.description, f"Met at {location.name}"
            )
        store.log("narration", f"You notice: {_listing(npcs)}.")
        self.award_experience("Perception", 3)
        rarity = highest_rarity([npc.rarity for npc in npcs])
        await self.trigger(f"discovered_npcs_{rarity.lower()}_{slug_part(location.name)}")
