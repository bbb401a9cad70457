"""
Event effect application.

Applies a generated ``EventEffects`` bundle to the world state store field by
field. Deterministic except for lead matching of newly created items and NPCs,
which goes through the discovery ledger before the entity is surfaced.

Unknown NPC ids and unknown limb names in a bundle are skipped rather than
failing the whole event.
"""

from __future__ import annotations

from typing import Optional

from taleweaver.logging_utils import log_deterministic, log_error
from taleweaver.schemas import (
    CharacterEffects,
    EventEffects,
    ItemEffects,
    LocationEffects,
    NpcEffect,
    WorldEffects,
)

from .context import EngineServices


class EffectApplier:
    """Writes an effect bundle into the store through its mutation primitives."""

    def __init__(self, services: EngineServices) -> None:
        self.services = services

    async def apply(self, effects: EventEffects, *, record_plot_point: bool = True) -> None:
        """Apply every section of ``effects``.

        ``record_plot_point`` controls whether ``major_plot_point_summary`` is
        appended here; callers that fold the event into a chronicle entry of
        their own pass False.
        """
        store = self.services.store
        log_deterministic("Effects", f"Applying effects of \"{effects.event_title}\"")

        if effects.character_effects:
            self._apply_character(effects.character_effects)
        if effects.item_effects:
            await self._apply_items(effects.item_effects)
        if effects.location_effects:
            await self._apply_location(effects.location_effects)
        for npc_effect in effects.npc_effects:
            self._apply_npc(npc_effect)
        if effects.world_effects:
            self._apply_world(effects.world_effects)

        if record_plot_point and effects.major_plot_point_summary:
            store.append_plot_point(
                effects.major_plot_point_summary,
                effects.involved_entity_ids_for_plot_point,
                plot_location_name(self.services),
            )

        self.services.ledger.add_leads(
            effects.potential_discoveries_generated,
            origin_id=effects.event_title,
            location_key=store.location_key,
        )

    # ------------------------------------------------------------------

    def _apply_character(self, effects: CharacterEffects) -> None:
        store = self.services.store
        before = store.character
        if effects.health_change or effects.limb_effects:
            changed = store.apply_limb_changes(effects.limb_effects, health_change=effects.health_change)
            after = store.character
            if changed and after:
                limbs = ", ".join(
                    f"{limb.name} ({limb.status}, {limb.health}HP)"
                    for limb in after.limbs
                    if limb.name in changed
                )
                store.log("combat", f"Your condition changes: {limbs}. Overall Health: {after.overall_health}HP.")
                if after.is_defeated and before and not before.is_defeated:
                    store.log("system", "You have been defeated!")
        if effects.energy_change:
            remaining = store.change_energy(effects.energy_change)
            sign = "+" if effects.energy_change > 0 else ""
            store.log("system", f"Energy {sign}{effects.energy_change}EN (now {remaining}EN).")
        for gain in effects.skill_xp_gains:
            if store.character and store.character.skill(gain.skill_name):
                store.gain_skill_experience(gain.skill_name, gain.amount)

    async def _apply_items(self, effects: ItemEffects) -> None:
        store = self.services.store
        ledger = self.services.ledger

        for suggestion in effects.items_added_to_inventory:
            item = suggestion.to_item()
            await ledger.link_entity_to_lead(item.id, item.name, item.description, "item")
            store.add_to_inventory([item])
            store.remember_entity(item.id, item.name, "item", item.rarity, item.description, "Received during an event")
            store.log("game_event", f"You acquired: {item.name} ({item.rarity}).")

        for item in store.remove_inventory_by_name(effects.items_removed_from_inventory_by_name):
            store.log("game_event", f"You lost: {item.name}.")

        for suggestion in effects.items_added_to_location:
            item = suggestion.to_item()
            await ledger.link_entity_to_lead(item.id, item.name, item.description, "item")
            store.add_location_items([item])
            store.log("game_event", f"{item.name} ({item.rarity}) appeared in the area!")

        for item in store.remove_location_items_by_name(effects.items_removed_from_location_by_name):
            store.log("game_event", f"{item.name} vanished from the area.")

    async def _apply_location(self, effects: LocationEffects) -> None:
        store = self.services.store
        if effects.description_change or effects.environment_tag_added or effects.environment_tag_removed:
            store.update_location(
                description_append=effects.description_change,
                tag_added=effects.environment_tag_added,
                tag_removed=effects.environment_tag_removed,
            )
        if effects.description_change:
            store.log("game_event", f"The area changes: {effects.description_change}")

        if effects.new_temporary_npc:
            npc = effects.new_temporary_npc.to_npc(event_spawned=True)
            await self.services.ledger.link_entity_to_lead(npc.id, npc.name, npc.description, "npc")
            store.add_location_npc(npc)
            store.remember_entity(npc.id, npc.name, "npc", npc.rarity, npc.description, "Appeared during an event")
            store.log("game_event", f"{npc.name} ({npc.rarity}) appears due to the event!")

    def _apply_npc(self, effect: NpcEffect) -> None:
        store = self.services.store
        npc = store.find_npc(effect.npc_id_targeted)
        if npc is None:
            log_error("Effects", f"Skipping effect for unknown NPC {effect.npc_id_targeted}")
            return

        updated = store.update_npc(
            npc.id,
            health_change=effect.health_change,
            is_defeated=effect.is_defeated,
            disposition=effect.disposition_change,
            is_hidden_during_event=effect.is_hidden_during_event,
        )
        if effect.health_change:
            verb = "takes" if effect.health_change < 0 else "recovers"
            store.log(
                "combat",
                f"{updated.name} {verb} {abs(effect.health_change)} health "
                f"({updated.current_health}/{updated.max_health}HP).",
            )
        if updated.is_defeated and not npc.is_defeated:
            store.log("combat", f"{updated.name} has been defeated!")
        if effect.disposition_change:
            store.log("game_event", f"{updated.name} now seems {updated.disposition}.")
        if effect.dialogue_override:
            store.log("narration", f"{updated.name} exclaims: \"{effect.dialogue_override}\"")

    def _apply_world(self, effects: WorldEffects) -> None:
        store = self.services.store
        if effects.time_passes:
            store.log("narration", f"Time passes: {effects.time_passes}")
        if effects.weather_changes:
            store.log("narration", f"The weather changes: {effects.weather_changes}")


def plot_location_name(services: EngineServices) -> Optional[str]:
    location = services.store.current_location
    return location.name if location else None
