"""
Event engine: unexpected events, player-initiated escalations and resolution.

Lifecycle per event: idle -> active/unresolved -> (progressed, may loop) ->
resolved -> idle. Only one event (or action-consequence) generation may be in
flight at a time; the scheduler's ``events`` gate enforces that.
"""

from __future__ import annotations

from typing import Optional

from taleweaver.content.base import ContentServiceError
from taleweaver.logging_utils import log_deterministic, log_error
from taleweaver.scheduling import GateBusyError
from taleweaver.schemas import (
    ActiveEvent,
    EventEffects,
    PlayerInitiatedAction,
    TargetSystem,
)

from .context import EngineServices
from .director import GameDirector
from .effects import EffectApplier, plot_location_name

HIGH_RARITY_MARKERS = ("_epic_", "_legendary_")
SYSTEM_TRIGGER_PREFIXES = ("event_", "game_start")

# Titles the content service uses for "nothing really happens".
NOTHING_HAPPENS_TITLES = (
    "a fleeting sensation",
    "the moment passes",
    "all remains calm",
    "nothing noteworthy",
    "nothing unusual",
)

NOTHING_HAPPENS_MESSAGE = "The feeling passes. Nothing significant seems to happen."


def is_trigger_eligible(trigger: str) -> bool:
    """Only high-rarity or system-driven triggers may escalate into events."""
    lowered = trigger.lower()
    return any(marker in lowered for marker in HIGH_RARITY_MARKERS) or lowered.startswith(
        SYSTEM_TRIGGER_PREFIXES
    )


def is_nothing_event(effects: EventEffects) -> bool:
    title = effects.event_title.strip().lower()
    return any(sentinel in title for sentinel in NOTHING_HAPPENS_TITLES) and not effects.has_effects()


class EventEngine:
    def __init__(
        self,
        services: EngineServices,
        effects: EffectApplier,
        director: Optional[GameDirector] = None,
    ) -> None:
        self.services = services
        self.effects = effects
        self.director = director

    @property
    def generating(self) -> bool:
        return self.services.scheduler.events.busy

    # ------------------------------------------------------------------
    # Unexpected events
    # ------------------------------------------------------------------

    async def attempt_unexpected_event(self, trigger: str) -> bool:
        """Maybe escalate a contextual trigger into an event. Returns True if one fired."""
        store = self.services.store
        if store.is_event_active or self.generating:
            log_deterministic("Events", f"Skipping trigger {trigger!r}: event already in progress")
            return False
        if not is_trigger_eligible(trigger):
            return False

        try:
            async with self.services.scheduler.events.hold():
                return await self._run_unexpected(trigger)
        except GateBusyError:
            log_deterministic("Events", f"Skipping trigger {trigger!r}: event generation in flight")
            return False

    async def _run_unexpected(self, trigger: str) -> bool:
        store = self.services.store
        content = self.services.content
        store.log("system", "You feel a change in the air...")
        try:
            context = self.services.context(TargetSystem.EVENT_GENERATION)
            decision = await content.decide_event_trigger(trigger, context)
            if not decision.should_trigger or not decision.concept:
                store.log("system", NOTHING_HAPPENS_MESSAGE)
                return False
            effects = await content.generate_event_effects(decision.concept, decision.intensity, context)
        except ContentServiceError as exc:
            log_error("Events", f"Event generation failed for {trigger!r}: {exc}")
            store.log("error", f"Event generation failed: {exc}")
            return False

        if is_nothing_event(effects):
            store.log("system", NOTHING_HAPPENS_MESSAGE)
            return False

        await self._activate(effects, origin="unexpected", title_prefix="EVENT")

        if effects.requires_player_action_to_resolve:
            store.log("system", "This event requires your attention.")
            self._record_setup(effects)
            if effects.resolution_criteria_prompt:
                store.log("system", f"Hint: {effects.resolution_criteria_prompt}")
            return True

        summary = f'Event Occurred: "{effects.event_title}". {effects.narration}'
        if effects.major_plot_point_summary:
            summary += f" Lore/Plot: {effects.major_plot_point_summary}"
        self._fold_into_chronicle(summary, effects)
        store.clear_active_event()
        return True

    # ------------------------------------------------------------------
    # Player-initiated escalations
    # ------------------------------------------------------------------

    async def handle_player_action(self, action: PlayerInitiatedAction) -> bool:
        """Generate and apply consequences of a deliberate escalation such as an attack."""
        store = self.services.store
        if store.is_event_active or self.generating:
            store.log("system", "Cannot initiate major actions now due to ongoing processes or events.")
            return False
        try:
            async with self.services.scheduler.events.hold():
                return await self._run_player_action(action)
        except GateBusyError:
            store.log("system", "Cannot initiate major actions now due to ongoing processes or events.")
            return False

    async def _run_player_action(self, action: PlayerInitiatedAction) -> bool:
        store = self.services.store
        target = store.find_npc(action.target_npc_id)
        try:
            effects = await self.services.content.generate_action_consequences(
                action, target, self.services.context(TargetSystem.COMBAT_RESOLUTION)
            )
        except ContentServiceError as exc:
            log_error("Events", f"Action consequences failed: {exc}")
            store.log("error", f"Action failed: {exc}")
            return False

        await self._activate(
            effects,
            origin="player_action",
            title_prefix="PLAYER ACTION EVENT",
            target_npc_id=action.target_npc_id,
        )

        target_after = store.find_npc(action.target_npc_id)
        target_defeated = target_after is None or target_after.is_defeated
        character = store.character
        player_defeated = bool(character and character.is_defeated)

        if target_defeated or player_defeated or not effects.requires_player_action_to_resolve:
            if target_defeated or player_defeated:
                store.log("system", "The confrontation has reached a conclusion.")
            else:
                store.log("system", "The immediate consequences of your action have played out.")
            summary = f'Action Outcome: "{effects.event_title}". Final Result: {effects.narration}'
            if effects.major_plot_point_summary:
                summary += f" Context/Lore: {effects.major_plot_point_summary}"
            self._fold_into_chronicle(summary, effects)
            store.clear_active_event()
        else:
            store.log("system", "The situation remains tense and requires further action.")
            self._record_setup(effects)
            if effects.resolution_criteria_prompt:
                store.log("system", f"Hint: {effects.resolution_criteria_prompt}")
        return True

    # ------------------------------------------------------------------
    # Resolution of events awaiting player input
    # ------------------------------------------------------------------

    async def handle_event_dialogue(self, player_input: str) -> Optional[str]:
        """Run a resolution check. Returns "resolved", "progressed", "unchanged" or None."""
        store = self.services.store
        event = store.active_event
        if event is None or not event.effects.requires_player_action_to_resolve:
            store.log("system", "Tried to send event dialogue, but no resolvable event is active.")
            return None

        title = event.effects.event_title
        try:
            resolution = await self.services.content.check_event_resolution(
                event, player_input, self.services.context(TargetSystem.EVENT_GENERATION)
            )
        except ContentServiceError as exc:
            log_error("Events", f"Resolution check failed: {exc}")
            store.log("error", f"Event resolution check failed: {exc}")
            return None

        if resolution.resolved:
            store.log("game_event", f'Event "{title}" has been resolved!')
            if resolution.resolution_narration:
                store.log("narration", resolution.resolution_narration)
            if resolution.disposition_update:
                update = resolution.disposition_update
                if store.find_npc(update.npc_id):
                    npc = store.update_npc(update.npc_id, disposition=update.new_disposition)
                    store.log("game_event", f"{npc.name} now seems {npc.disposition}.")
            for suggestion in resolution.items_awarded:
                item = suggestion.to_item()
                await self.services.ledger.link_entity_to_lead(item.id, item.name, item.description, "item")
                store.add_to_inventory([item])
                store.remember_entity(item.id, item.name, "item", item.rarity, item.description, f"Reward for {title}")
                store.log("game_event", f"You received: {item.name} ({item.rarity}).")
            summary = resolution.major_plot_point_summary or (
                f'Event Resolved: "{title}". {resolution.resolution_narration}'.strip()
            )
            self._fold_into_chronicle(summary, event.effects)
            store.clear_active_event()
            if self.director is not None:
                self.director.request_analysis()
            return "resolved"

        if resolution.progressed:
            store.log("game_event", f'Event "{title}" has progressed!')
            narration = resolution.next_stage_narration or resolution.resolution_narration
            store.update_active_event(
                narration=narration or None,
                visual_hint=resolution.next_stage_visual_hint,
            )
            if narration:
                store.log("narration", narration)
            return "progressed"

        if resolution.resolution_narration:
            store.log("narration", resolution.resolution_narration)
        store.log("system", "Your action didn't seem to change the course of the event.")
        return "unchanged"

    # ------------------------------------------------------------------

    async def _activate(
        self,
        effects: EventEffects,
        *,
        origin: str,
        title_prefix: str,
        target_npc_id: Optional[str] = None,
    ) -> None:
        store = self.services.store
        store.set_active_event(ActiveEvent(effects=effects, origin=origin, target_npc_id=target_npc_id))
        store.log("game_event", f"{title_prefix}: {effects.event_title}")
        store.log("narration", effects.narration)
        if effects.combat_narration:
            store.log("combat", effects.combat_narration)

        if effects.visual_hint_for_event_image:
            handle = await self.services.illustrate(
                effects.visual_hint_for_event_image, self.services.visual_style
            )
            if handle:
                store.update_active_event(image_handle=handle)
                store.log("system", "Event image generated.")

        await self.effects.apply(effects, record_plot_point=False)

    def _fold_into_chronicle(self, summary: str, effects: EventEffects) -> None:
        store = self.services.store
        character = store.character
        involved = list(effects.involved_entity_ids_for_plot_point)
        if character:
            involved.insert(0, character.id)
        store.append_plot_point(summary, involved, plot_location_name(self.services))

    def _record_setup(self, effects: EventEffects) -> None:
        """Chronicle the setup of an event that stays active."""
        if effects.major_plot_point_summary:
            self.services.store.append_plot_point(
                effects.major_plot_point_summary,
                effects.involved_entity_ids_for_plot_point,
                plot_location_name(self.services),
            )
