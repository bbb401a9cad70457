"""
Command processor: one free-text player input per turn.

Pipeline:
1. Log the command and parse it through the content service
2. Implausible intents end the turn with the given reason (no mutation)
3. Dispatch the action kind to its handler
4. Epilogue, whatever happened: bump the command counter. The session runs the
   director cadence check once the console gate is released.
"""

from __future__ import annotations

from typing import Dict

from taleweaver.content.base import ContentServiceError
from taleweaver.content.models import ParsedCommand
from taleweaver.logging_utils import log_deterministic, log_error

from .actions import ActionKind, resolve_action
from .context import EngineServices
from .events import EventEngine
from .handlers import (
    ActionHandler,
    ExplorationHandlers,
    ItemHandlers,
    MovementHandlers,
    SocialHandlers,
    StatusHandlers,
)

# Actions still allowed while an event waits for the player.
EVENT_PASSTHROUGH_ACTIONS = frozenset({ActionKind.INVENTORY, ActionKind.STATUS, ActionKind.EVENT_DIALOGUE_INPUT})


class CommandProcessor:
    def __init__(self, services: EngineServices, events: EventEngine) -> None:
        self.services = services
        self.events = events

        movement = MovementHandlers(services, events)
        exploration = ExplorationHandlers(services, events)
        items = ItemHandlers(services, events)
        social = SocialHandlers(services, events)
        status = StatusHandlers(services, events)

        self.handlers: Dict[ActionKind, ActionHandler] = {
            ActionKind.MOVE: movement.move,
            ActionKind.TALK: social.talk,
            ActionKind.DIALOGUE_INPUT: social.dialogue_input,
            ActionKind.END_CONVERSATION: social.end_conversation,
            ActionKind.PICKUP: items.pickup,
            ActionKind.USE: items.use,
            ActionKind.EQUIP: items.equip,
            ActionKind.UNEQUIP: items.unequip,
            ActionKind.EXAMINE: exploration.examine,
            ActionKind.DISCOVER_ITEMS: exploration.discover_items,
            ActionKind.DISCOVER_NPCS: exploration.discover_npcs,
            ActionKind.GIVE_ITEM: social.give_item,
            ActionKind.REQUEST_ITEM: social.request_item,
            ActionKind.ATTACK: social.attack,
            ActionKind.INVENTORY: status.inventory,
            ActionKind.STATUS: status.status,
            ActionKind.ADD_TO_CRAFTING_SLOT: items.add_to_crafting_slot,
            ActionKind.REMOVE_FROM_CRAFTING_SLOT: items.remove_from_crafting_slot,
            ActionKind.CRAFT: items.craft,
            ActionKind.EVENT_DIALOGUE_INPUT: social.event_dialogue_input,
            ActionKind.UNKNOWN: self._unknown,
        }
        missing = set(ActionKind) - set(self.handlers)
        if missing:
            raise RuntimeError(f"No handler for actions: {sorted(kind.value for kind in missing)}")

    async def process(self, raw_text: str) -> None:
        store = self.services.store
        store.log("command", f"> {raw_text}")
        try:
            await self._run(raw_text)
        except Exception as exc:
            log_error("Commands", f"Unhandled error for {raw_text!r}: {type(exc).__name__}: {exc}")
            store.log("error", f"Command processing error: {exc}")
        finally:
            store.increment_command_count()

    async def _run(self, raw_text: str) -> None:
        store = self.services.store
        try:
            command = await self.services.content.parse_intent(raw_text, self.services.context())
        except ContentServiceError as exc:
            store.log("error", f"Could not understand that command: {exc}")
            return

        if not command.is_plausible:
            store.log("error", command.reason_if_not_plausible or "That doesn't seem possible right now.")
            return
        if command.narration_for_plausible_action:
            store.log("narration", command.narration_for_plausible_action)

        kind = resolve_action(command.action)
        event = store.active_event
        if (
            event is not None
            and event.effects.requires_player_action_to_resolve
            and kind not in EVENT_PASSTHROUGH_ACTIONS
        ):
            log_deterministic("Commands", f"Routing {kind.value} to the active event")
            kind = ActionKind.EVENT_DIALOGUE_INPUT

        log_deterministic("Commands", f"Dispatching {kind.value}")
        await self.handlers[kind](command, raw_text)

    async def _unknown(self, command: ParsedCommand, raw_text: str) -> None:
        self.services.store.log("error", f"Unknown action: {command.action}")
