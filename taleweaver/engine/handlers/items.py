"""Picking up, using, equipping and crafting items."""

from __future__ import annotations

from typing import Dict, Optional

from taleweaver.content.base import ContentServiceError
from taleweaver.content.models import NarrativeKind, ParsedCommand
from taleweaver.schemas import Item, LimbEffect, TargetSystem

from ..context import find_by_name
from .base import HandlerGroup, slug_part

USE_ENERGY_COST = 1
CRAFT_ENERGY_COST = 3

CRAFTING_EXPERIENCE: Dict[str, int] = {
    "Common": 5,
    "Uncommon": 10,
    "Rare": 20,
    "Epic": 50,
    "Legendary": 100,
}


def crafting_experience(rarity: str, *, recipe: bool) -> int:
    """Experience for crafting an item; single-ingredient recipe crafts earn half."""
    base = CRAFTING_EXPERIENCE.get(rarity, CRAFTING_EXPERIENCE["Common"])
    return base // 2 if recipe else base


class ItemHandlers(HandlerGroup):
    async def pickup(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to pick anything up."):
            return
        name = command.first_target or command.parameters.with_item
        item = find_by_name(store.location_items or [], name)
        if item is None:
            store.log("system", f"There is no \"{name or 'item'}\" here to pick up.")
            return

        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.PICKUP,
                {"item": item.model_dump(mode="json")},
                self.services.context(TargetSystem.ITEM_GENERATION),
            )
        except ContentServiceError as exc:
            store.log("error", f"Failed to pick up {item.name}: {exc}")
            return

        store.pickup_item(item.id)
        store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        store.log("game_event", f"You picked up: {item.name} ({item.rarity}).")
        store.remember_entity(item.id, item.name, "item", item.rarity, item.description, "Picked up")
        self.services.ledger.add_leads(outcome.new_leads, item.id, store.location_key)
        await self.trigger(f"item_pickup_{item.rarity.lower()}_{slug_part(item.name)}")

    async def use(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to use anything."):
            return
        name = command.parameters.with_item or command.first_target
        item = find_by_name(store.inventory, name)
        if item is None:
            store.log("system", f"You don't have \"{name or 'that'}\".")
            return

        self.spend_energy(USE_ENERGY_COST)
        subject = {
            "item": item.model_dump(mode="json"),
            "on_target": command.parameters.on_target,
            "limb": command.parameters.limb_name if command.parameters.is_limb_target else None,
        }
        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.ITEM_USE, subject, self.services.context(TargetSystem.PLAYER_VITALS)
            )
        except ContentServiceError as exc:
            store.log("error", f"Failed to use {item.name}: {exc}")
            return

        store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        if outcome.item_consumed:
            store.remove_from_inventory(item.id)
            store.log("game_event", f"{item.name} was used up.")
        if outcome.health_change:
            character = store.character
            limb = character.limb(outcome.limb_target) if character and outcome.limb_target else None
            if limb is not None:
                store.apply_limb_changes([LimbEffect(limb_name=limb.name, health_change=outcome.health_change)])
            else:
                store.apply_limb_changes(health_change=outcome.health_change)
            store.log("system", f"Overall Health: {store.character.overall_health}HP.")
        if outcome.energy_change:
            remaining = store.change_energy(outcome.energy_change)
            store.log("system", f"Energy: {remaining}/{store.character.max_energy}EN.")
        self.services.ledger.add_leads(outcome.new_leads, item.id, store.location_key)
        await self.trigger(f"item_used_{item.rarity.lower()}_{slug_part(item.name)}")

    async def equip(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        name = command.parameters.with_item or command.first_target
        item = find_by_name(store.inventory, name)
        if item is None:
            store.log("system", f"You don't have \"{name or 'that'}\".")
            return
        limb_name = command.parameters.limb_name or command.parameters.on_target
        character = store.character
        limb = character.limb(limb_name) if character and limb_name else None
        if limb is None:
            store.log("system", f"You have no limb called \"{limb_name or '?'}\".")
            return
        store.equip_item(item.id, limb.name)
        store.log("system", f"You equip {item.name} on your {limb.name}.")

    async def unequip(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        name = command.parameters.with_item or command.first_target
        character = store.character
        equipped = [item for limb in character.limbs for item in limb.equipped_items] if character else []
        item = find_by_name(equipped, name)
        if item is None:
            store.log("system", f"You have nothing called \"{name or 'that'}\" equipped.")
            return
        store.unequip_item(item.id)
        store.log("system", f"You unequip {item.name}.")

    async def add_to_crafting_slot(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        name = command.parameters.with_item or command.first_target
        item = find_by_name(store.inventory, name)
        if item is None:
            store.log("system", f"You don't have \"{name or 'that'}\".")
            return
        slots = store.crafting_slots
        index = self._slot_index(command)
        if index is None:
            index = next((i for i, slotted in enumerate(slots) if slotted is None), None)
        if index is None:
            store.log("system", "All crafting slots are full.")
            return
        if not 0 <= index < len(slots):
            store.log("system", f"There is no crafting slot {index + 1}.")
            return
        if slots[index] is not None:
            store.log("system", f"Crafting slot {index + 1} already holds {slots[index].name}.")
            return
        store.place_in_crafting_slot(item.id, index)
        store.log("system", f"{item.name} placed in crafting slot {index + 1}.")

    async def remove_from_crafting_slot(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        slots = store.crafting_slots
        index = self._slot_index(command)
        if index is None:
            name = command.parameters.with_item or command.first_target
            slotted = find_by_name([s for s in slots if s is not None], name)
            index = next((i for i, s in enumerate(slots) if s is not None and slotted and s.id == slotted.id), None)
        if index is None or not 0 <= index < len(slots) or slots[index] is None:
            store.log("system", "That crafting slot is empty.")
            return
        item = store.remove_from_crafting_slot(index)
        store.log("system", f"{item.name} returned to your inventory.")

    async def craft(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to craft anything."):
            return
        ingredients = [item for item in store.crafting_slots if item is not None]
        if not ingredients:
            store.log("system", "Place at least one item in the crafting slots first.")
            return

        self.spend_energy(CRAFT_ENERGY_COST)
        recipe = len(ingredients) == 1
        subject = {
            "ingredients": [item.model_dump(mode="json") for item in ingredients],
            "mode": "recipe" if recipe else "experimental",
            "intent": command.first_target,
        }
        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.CRAFTING, subject, self.services.context(TargetSystem.ITEM_GENERATION)
            )
        except ContentServiceError as exc:
            store.log("error", f"Crafting failed: {exc}")
            return

        store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        if outcome.crafted_item is None:
            store.log("system", "The crafting attempt failed. The materials remain in the slots.")
            return

        crafted: Item = outcome.crafted_item.to_item()
        await self.services.ledger.link_entity_to_lead(crafted.id, crafted.name, crafted.description, "item")
        store.consume_crafting_slots()
        store.add_to_inventory([crafted])
        store.remember_entity(
            crafted.id,
            crafted.name,
            "item",
            crafted.rarity,
            crafted.description,
            "Crafted from " + ", ".join(item.name for item in ingredients),
        )
        store.log("game_event", f"You crafted: {crafted.name} ({crafted.rarity}).")
        self.award_experience("Crafting", crafting_experience(crafted.rarity, recipe=recipe))
        self.services.ledger.add_leads(outcome.new_leads, crafted.id, store.location_key)
        await self.trigger(f"crafted_item_{crafted.rarity.lower()}_{slug_part(crafted.name)}")

    @staticmethod
    def _slot_index(command: ParsedCommand) -> Optional[int]:
        slot = command.parameters.slot_index
        return slot - 1 if slot is not None else None
