"""Conversation, gifts, requests and attacks on NPCs."""

from __future__ import annotations

from typing import Optional

from taleweaver.content.base import ContentServiceError
from taleweaver.content.models import NarrativeKind, ParsedCommand
from taleweaver.schemas import NPC, PlayerInitiatedAction, TargetSystem

from ..context import find_by_name
from .base import HandlerGroup, slug_part

TRADE_ENERGY_COST = 1
ATTACK_ENERGY_COST = 2
TRADE_EXPERIENCE = 10


def dialogue_trigger(npc: NPC) -> str:
    if npc.rarity in ("Epic", "Legendary"):
        return f"dialogue_interaction_with_{npc.rarity.lower()}_npc_{npc.name.replace(' ', '_')}"
    return f"dialogue_response_from_{slug_part(npc.name)}_rarity_{npc.rarity}"


class SocialHandlers(HandlerGroup):
    def _npc_for(self, command: ParsedCommand, *names: Optional[str]) -> Optional[NPC]:
        """First visible NPC matching any of ``names``, else the conversation partner."""
        for name in names:
            npc = self.services.find_visible_npc(name)
            if npc is not None:
                return npc
        if command.parameters.direct_object_npc_id:
            npc = self.services.find_visible_npc(command.parameters.direct_object_npc_id)
            if npc is not None:
                return npc
        partner = self.store.talking_to
        if partner is not None and self.services.find_visible_npc(partner.id):
            return partner
        return None

    async def talk(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to talk."):
            return
        name = command.parameters.npc_target_name or command.first_target
        npc = self.services.find_visible_npc(name)
        if npc is None:
            store.log("system", f"There is no one called \"{name or 'that'}\" here.")
            return
        if npc.is_defeated:
            store.log("system", f"{npc.name} cannot respond.")
            return
        store.set_talking_to(npc.id)
        store.log("system", f"You start talking to {npc.name}.")
        if command.parameters.dialogue_text:
            await self._speak(npc, command.parameters.dialogue_text)

    async def dialogue_input(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to speak."):
            return
        partner = store.talking_to
        if partner is None:
            store.log("system", "You are not talking to anyone.")
            return
        if self.services.find_visible_npc(partner.id) is None or partner.is_defeated:
            store.set_talking_to(None)
            store.log("system", f"{partner.name} is no longer able to talk.")
            return
        await self._speak(partner, command.parameters.dialogue_text or raw_text)

    async def end_conversation(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        partner = store.talking_to
        if partner is None:
            store.log("system", "You are not talking to anyone.")
            return
        store.set_talking_to(None)
        store.log("system", f"You end your conversation with {partner.name}.")

    async def give_item(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to give anything away."):
            return
        params = command.parameters
        item_name = params.item_to_give_name or params.with_item or command.first_target
        item = find_by_name(store.inventory, item_name)
        if item is None:
            store.log("system", f"You don't have \"{item_name or 'that'}\".")
            return
        npc = self._npc_for(command, params.target_npc_name_for_interaction, params.npc_target_name)
        if npc is None:
            store.log("system", "There is no one here to give that to.")
            return
        if npc.is_defeated:
            store.log("system", f"{npc.name} cannot accept anything.")
            return

        self.spend_energy(TRADE_ENERGY_COST)
        subject = {"npc": npc.model_dump(mode="json"), "item": item.model_dump(mode="json")}
        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.GIFT, subject, self.services.context(TargetSystem.NPC_INTERACTION)
            )
        except ContentServiceError as exc:
            store.log("error", f"Failed to give {item.name}: {exc}")
            return

        store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        if outcome.accepted:
            store.give_item_to_npc(item.id, npc.id)
            store.log("game_event", f"{npc.name} accepted {item.name}.")
            self.award_experience("Persuasion", TRADE_EXPERIENCE)
        else:
            store.log("game_event", f"{npc.name} refused {item.name}.")
        self._apply_disposition(npc, outcome.disposition_change)
        self.services.ledger.add_leads(outcome.new_leads, npc.id, store.location_key)
        verdict = "accepted" if outcome.accepted else "refused"
        await self.trigger(f"gave_item_{item.rarity.lower()}_to_{slug_part(npc.name)}_{verdict}")

    async def request_item(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to ask for anything."):
            return
        params = command.parameters
        item_name = params.item_to_request_name or params.with_item or command.first_target
        npc = self._npc_for(command, params.target_npc_name_for_request, params.npc_target_name)
        if npc is None:
            store.log("system", "There is no one here to ask.")
            return
        if npc.is_defeated:
            store.log("system", f"{npc.name} cannot respond.")
            return

        self.spend_energy(TRADE_ENERGY_COST)
        subject = {"npc": npc.model_dump(mode="json"), "requested_item": item_name}
        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.REQUEST, subject, self.services.context(TargetSystem.NPC_INTERACTION)
            )
        except ContentServiceError as exc:
            store.log("error", f"Failed to ask {npc.name}: {exc}")
            return

        store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        received = None
        if outcome.accepted:
            held = find_by_name(npc.inventory, item_name)
            if held is not None:
                received = store.take_item_from_npc(npc.id, held.id)
            elif outcome.offered_item is not None:
                received = outcome.offered_item.to_item()
                await self.services.ledger.link_entity_to_lead(
                    received.id, received.name, received.description, "item"
                )
                store.add_to_inventory([received])
        self._apply_disposition(npc, outcome.disposition_change)
        self.services.ledger.add_leads(outcome.new_leads, npc.id, store.location_key)

        if received is not None:
            store.remember_entity(
                received.id, received.name, "item", received.rarity, received.description, f"Given by {npc.name}"
            )
            store.log("game_event", f"{npc.name} gave you {received.name} ({received.rarity}).")
            self.award_experience("Persuasion", TRADE_EXPERIENCE)
            await self.trigger(f"npc_{slug_part(npc.name)}_gave_item_{received.rarity.lower()}")
        else:
            store.log("game_event", f"{npc.name} did not give you {item_name or 'anything'}.")
            await self.trigger(f"npc_{slug_part(npc.name)}_refused_item_{slug_part(item_name or 'item')}")

    async def attack(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if self.blocked_by_defeat("You are too weak to fight."):
            return
        params = command.parameters
        npc = self._npc_for(command, params.npc_target_name, command.first_target)
        if npc is None:
            store.log("system", "There is no one here by that name to attack.")
            return
        if npc.is_defeated:
            store.log("system", f"{npc.name} is already defeated.")
            return
        self.spend_energy(ATTACK_ENERGY_COST)
        await self.events.handle_player_action(PlayerInitiatedAction(target_npc_id=npc.id))

    async def event_dialogue_input(self, command: ParsedCommand, raw_text: str) -> None:
        await self.events.handle_event_dialogue(command.parameters.dialogue_text or raw_text)

    # ------------------------------------------------------------------

    async def _speak(self, npc: NPC, text: str) -> None:
        store = self.store
        subject = {"npc": npc.model_dump(mode="json"), "player_says": text}
        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.DIALOGUE, subject, self.services.context(TargetSystem.NPC_INTERACTION)
            )
        except ContentServiceError as exc:
            store.log("error", f"{npc.name} doesn't respond: {exc}")
            return

        if outcome.raw_text:
            processed = f"{npc.name}: \"{outcome.processed_text}\"" if outcome.processed_text else None
            store.log("narration", f"{npc.name}: \"{outcome.raw_text}\"", processed_text=processed)
        else:
            store.log("narration", outcome.narration, processed_text=outcome.processed_text)
        self._apply_disposition(npc, outcome.disposition_change)
        self.services.ledger.add_leads(outcome.new_leads, npc.id, store.location_key)
        await self.trigger(dialogue_trigger(npc))

    def _apply_disposition(self, npc: NPC, disposition: Optional[str]) -> None:
        if disposition and disposition != npc.disposition:
            updated = self.store.update_npc(npc.id, disposition=disposition)
            self.store.log("game_event", f"{updated.name} now seems {updated.disposition}.")
