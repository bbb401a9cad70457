"""Closed vocabulary of player actions."""

from __future__ import annotations

from enum import Enum
from typing import Dict


class ActionKind(str, Enum):
    MOVE = "move"
    TALK = "talk"
    DIALOGUE_INPUT = "dialogue_input"
    END_CONVERSATION = "end_conversation"
    PICKUP = "pickup"
    USE = "use"
    EQUIP = "equip"
    UNEQUIP = "unequip"
    EXAMINE = "examine"
    DISCOVER_ITEMS = "discover_items"
    DISCOVER_NPCS = "discover_npcs"
    GIVE_ITEM = "give_item"
    REQUEST_ITEM = "request_item"
    ATTACK = "attack"
    INVENTORY = "inventory"
    STATUS = "status"
    ADD_TO_CRAFTING_SLOT = "add_to_crafting_slot"
    REMOVE_FROM_CRAFTING_SLOT = "remove_from_crafting_slot"
    CRAFT = "craft"
    EVENT_DIALOGUE_INPUT = "event_dialogue_input"
    UNKNOWN = "unknown"


ACTION_ALIASES: Dict[str, ActionKind] = {
    "go": ActionKind.MOVE,
    "move": ActionKind.MOVE,
    "walk": ActionKind.MOVE,
    "run": ActionKind.MOVE,
    "leave_area": ActionKind.MOVE,
    "talk": ActionKind.TALK,
    "dialogue_input": ActionKind.DIALOGUE_INPUT,
    "end_conversation": ActionKind.END_CONVERSATION,
    "pickup": ActionKind.PICKUP,
    "take": ActionKind.PICKUP,
    "get": ActionKind.PICKUP,
    "use": ActionKind.USE,
    "equip": ActionKind.EQUIP,
    "unequip": ActionKind.UNEQUIP,
    "examine": ActionKind.EXAMINE,
    "look": ActionKind.EXAMINE,
    "inspect": ActionKind.EXAMINE,
    "discover_items": ActionKind.DISCOVER_ITEMS,
    "search_area_for_items": ActionKind.DISCOVER_ITEMS,
    "discover_npcs": ActionKind.DISCOVER_NPCS,
    "look_for_people": ActionKind.DISCOVER_NPCS,
    "give_item": ActionKind.GIVE_ITEM,
    "request_item_from_npc": ActionKind.REQUEST_ITEM,
    "attack_npc": ActionKind.ATTACK,
    "attack": ActionKind.ATTACK,
    "inventory": ActionKind.INVENTORY,
    "check_inventory": ActionKind.INVENTORY,
    "status": ActionKind.STATUS,
    "health": ActionKind.STATUS,
    "check_self": ActionKind.STATUS,
    "add_to_crafting_slot": ActionKind.ADD_TO_CRAFTING_SLOT,
    "remove_from_crafting_slot": ActionKind.REMOVE_FROM_CRAFTING_SLOT,
    "craft": ActionKind.CRAFT,
    "event_dialogue_input": ActionKind.EVENT_DIALOGUE_INPUT,
}


def resolve_action(action: str) -> ActionKind:
    """Map a parsed action string to its kind; anything unrecognized is UNKNOWN."""
    return ACTION_ALIASES.get(action.strip().lower(), ActionKind.UNKNOWN)
