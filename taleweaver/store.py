"""
World state store: the single owner of all mutable game state.

Every other component reads deep copies through the accessors below and writes
back through named mutation primitives. Mutations are synchronous and total:
each one works on a private copy of the state and only swaps it in once every
check has passed, so a rejected mutation leaves nothing half-applied.

Invariants enforced here (and nowhere else):
- ``character.overall_health == round(mean(limb.health))`` after any limb change
- ``character.is_defeated == (character.overall_health <= 0)``
- an item identity is owned by at most one container
- leads move mentioned -> discovered only, with ``fulfilled_by_id`` set exactly then
- the chronicle is append-only
"""

from __future__ import annotations

from contextlib import contextmanager
from statistics import mean
from typing import Dict, Iterator, List, Optional, Sequence

from .logging_utils import Color, colored
from .schemas import (
    ActiveEvent,
    Character,
    Coordinates,
    DirectorDirective,
    GameLogEntry,
    GameState,
    Item,
    LimbEffect,
    LocationData,
    LogEntryType,
    MajorPlotPoint,
    MemorableEntity,
    MemorableEntityType,
    NPC,
    PotentialDiscovery,
    VisitedLocationEntry,
    experience_for_next_level,
    utcnow,
)

PLOT_SUMMARY_MAX_CHARS = 250
PLOT_DUPLICATE_WINDOW = 3
ENTITY_HINT_MAX_CHARS = 150
ENTITY_CONTEXT_MAX_CHARS = 200

_LOG_COLORS: Dict[str, Color] = {
    "command": Color.CYAN,
    "narration": Color.GREEN,
    "error": Color.RED,
    "system": Color.BLUE,
    "game_event": Color.YELLOW,
    "combat": Color.RED,
}


class StoreError(Exception):
    """Raised when a mutation request is invalid for the current state.

    The store is left exactly as it was before the call.
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation}: {reason}")


class WorldStateStore:
    """Authoritative game state with invariant-checked mutation primitives."""

    def __init__(self, state: Optional[GameState] = None, *, echo_log: bool = False) -> None:
        self._state = state.model_copy(deep=True) if state is not None else GameState()
        self.echo_log = echo_log
        if self._state.character is not None:
            _recompute_health(self._state.character)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> GameState:
        return self._state.model_copy(deep=True)

    def restore(self, state: GameState) -> None:
        """Replace the whole state, e.g. after loading a saved game."""
        restored = state.model_copy(deep=True)
        if restored.character is not None:
            _recompute_health(restored.character)
        self._state = restored

    @contextmanager
    def _mutate(self) -> Iterator[GameState]:
        draft = self._state.model_copy(deep=True)
        yield draft
        self._state = draft

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def game_id(self) -> str:
        return self._state.game_id

    @property
    def has_game(self) -> bool:
        return self._state.character is not None and bool(self._state.visited_locations)

    @property
    def character(self) -> Optional[Character]:
        character = self._state.character
        return character.model_copy(deep=True) if character else None

    @property
    def coordinates(self) -> Coordinates:
        return self._state.coordinates

    @property
    def previous_coordinates(self) -> Optional[Coordinates]:
        return self._state.previous_coordinates

    @property
    def location_key(self) -> str:
        return self._state.coordinates.key

    def visited_entry(self, key: str) -> Optional[VisitedLocationEntry]:
        entry = self._state.visited_locations.get(key)
        return entry.model_copy(deep=True) if entry else None

    def has_visited(self, key: str) -> bool:
        return key in self._state.visited_locations

    @property
    def visited_keys(self) -> List[str]:
        return list(self._state.visited_locations)

    @property
    def current_location(self) -> Optional[LocationData]:
        entry = self._state.visited_locations.get(self.location_key)
        return entry.location.model_copy(deep=True) if entry else None

    @property
    def location_items(self) -> Optional[List[Item]]:
        entry = self._state.visited_locations.get(self.location_key)
        if entry is None or entry.items is None:
            return None
        return [item.model_copy(deep=True) for item in entry.items]

    @property
    def location_npcs(self) -> Optional[List[NPC]]:
        entry = self._state.visited_locations.get(self.location_key)
        if entry is None or entry.npcs is None:
            return None
        return [npc.model_copy(deep=True) for npc in entry.npcs]

    @property
    def inventory(self) -> List[Item]:
        return [item.model_copy(deep=True) for item in self._state.inventory]

    @property
    def crafting_slots(self) -> List[Optional[Item]]:
        return [item.model_copy(deep=True) if item else None for item in self._state.crafting_slots]

    @property
    def talking_to(self) -> Optional[NPC]:
        npc_id = self._state.talking_to_npc_id
        if npc_id is None:
            return None
        return self.find_npc(npc_id)

    @property
    def active_event(self) -> Optional[ActiveEvent]:
        event = self._state.active_event
        return event.model_copy(deep=True) if event else None

    @property
    def is_event_active(self) -> bool:
        return self._state.active_event is not None

    @property
    def leads(self) -> List[PotentialDiscovery]:
        return [lead.model_copy(deep=True) for lead in self._state.leads]

    def get_lead(self, lead_id: str) -> Optional[PotentialDiscovery]:
        for lead in self._state.leads:
            if lead.id == lead_id:
                return lead.model_copy(deep=True)
        return None

    def unresolved_leads(self, lead_type: Optional[str] = None) -> List[PotentialDiscovery]:
        return [
            lead.model_copy(deep=True)
            for lead in self._state.leads
            if lead.status == "mentioned" and (lead_type is None or lead.type == lead_type)
        ]

    @property
    def chronicle(self) -> List[MajorPlotPoint]:
        return list(self._state.chronicle)

    @property
    def memorable_entities(self) -> List[MemorableEntity]:
        return [entity.model_copy() for entity in self._state.memorable_entities.values()]

    @property
    def directive(self) -> Optional[DirectorDirective]:
        directive = self._state.directive
        return directive.model_copy(deep=True) if directive else None

    @property
    def player_command_count(self) -> int:
        return self._state.player_command_count

    @property
    def log_entries(self) -> List[GameLogEntry]:
        return list(self._state.log)

    def recent_log(self, limit: int = 5) -> List[GameLogEntry]:
        return list(self._state.log[-limit:])

    def find_npc(self, npc_id: str) -> Optional[NPC]:
        for npc in self._state.visited_locations.get(self.location_key, _EMPTY_ENTRY).npcs or []:
            if npc.id == npc_id:
                return npc.model_copy(deep=True)
        return None

    def item_owners(self, item_id: str) -> List[str]:
        """Names of every container currently holding ``item_id``."""
        return _owners(self._state, item_id)

    # ------------------------------------------------------------------
    # Game log
    # ------------------------------------------------------------------

    def log(self, entry_type: LogEntryType, text: str, processed_text: Optional[str] = None) -> GameLogEntry:
        entry = GameLogEntry(type=entry_type, text=text, processed_text=processed_text)
        self._state.log.append(entry)
        if self.echo_log:
            print(colored(f"[{entry_type}] {text}", _LOG_COLORS.get(entry_type, Color.CYAN)))
        return entry

    def increment_command_count(self) -> int:
        self._state.player_command_count += 1
        return self._state.player_command_count

    # ------------------------------------------------------------------
    # Game setup and movement
    # ------------------------------------------------------------------

    def start_game(
        self,
        character: Character,
        location: LocationData,
        coordinates: Optional[Coordinates] = None,
    ) -> None:
        """Reset the store to a fresh game at ``coordinates`` (default 0,0)."""
        coordinates = coordinates or Coordinates()
        state = GameState()
        state.character = character.model_copy(deep=True)
        _recompute_health(state.character)
        state.coordinates = coordinates
        state.visited_locations[coordinates.key] = VisitedLocationEntry(location=location)
        self._state = state

    def record_location(self, key: str, location: LocationData) -> None:
        """Cache a newly generated location as unsearched."""
        with self._mutate() as state:
            if key in state.visited_locations:
                raise StoreError("record_location", f"location {key} is already cached")
            state.visited_locations[key] = VisitedLocationEntry(location=location)

    def move_to(self, coordinates: Coordinates) -> None:
        with self._mutate() as state:
            if coordinates.key not in state.visited_locations:
                raise StoreError("move_to", f"location {coordinates.key} has not been generated")
            state.previous_coordinates = state.coordinates
            state.coordinates = coordinates
            state.talking_to_npc_id = None

    def update_location(
        self,
        *,
        description_append: Optional[str] = None,
        tag_added: Optional[str] = None,
        tag_removed: Optional[str] = None,
    ) -> LocationData:
        with self._mutate() as state:
            location = _current_entry(state, "update_location").location
            if description_append:
                location.description = f"{location.description}\n{description_append}"
                if location.processed_description:
                    location.processed_description = (
                        f"{location.processed_description}\n{description_append}"
                    )
            if tag_added and tag_added not in location.environment_tags:
                location.environment_tags.append(tag_added)
            if tag_removed:
                location.environment_tags = [t for t in location.environment_tags if t != tag_removed]
            result = location.model_copy(deep=True)
        return result

    # ------------------------------------------------------------------
    # Character
    # ------------------------------------------------------------------

    def consume_energy(self, amount: int) -> int:
        """Spend energy, clamped at zero. Returns the remaining energy."""
        return self.change_energy(-abs(amount))

    def change_energy(self, delta: int) -> int:
        with self._mutate() as state:
            character = _require_character(state, "change_energy")
            character.current_energy = max(0, min(character.max_energy, character.current_energy + delta))
            remaining = character.current_energy
        return remaining

    def gain_skill_experience(self, skill_name: str, amount: int) -> Optional[int]:
        """Add experience and level up. Returns the new level if it changed."""
        if amount <= 0:
            return None
        with self._mutate() as state:
            character = _require_character(state, "gain_skill_experience")
            skill = character.skill(skill_name)
            if skill is None:
                raise StoreError("gain_skill_experience", f"unknown skill {skill_name!r}")
            start_level = skill.level
            skill.experience += int(amount)
            while skill.experience >= skill.experience_to_next_level:
                skill.experience -= skill.experience_to_next_level
                skill.level += 1
                skill.experience_to_next_level = experience_for_next_level(skill.level)
            new_level = skill.level
        if new_level == start_level:
            return None
        if start_level == 0:
            self.log("game_event", f"You learned {skill_name} (Level {new_level})!")
        else:
            self.log("game_event", f"{skill_name} increased to Level {new_level}!")
        return new_level

    def apply_limb_changes(
        self,
        limb_effects: Sequence[LimbEffect] = (),
        *,
        health_change: Optional[int] = None,
    ) -> List[str]:
        """Change limb health/status and recompute derived health.

        ``health_change`` applies to every limb; limb effects naming an unknown
        limb are ignored. Returns the names of limbs that changed.
        """
        changed: List[str] = []
        with self._mutate() as state:
            character = _require_character(state, "apply_limb_changes")
            if health_change:
                for limb in character.limbs:
                    limb.health = _clamp(limb.health + health_change)
                    changed.append(limb.name)
            for effect in limb_effects:
                limb = character.limb(effect.limb_name)
                if limb is None:
                    continue
                if effect.health_change:
                    limb.health = _clamp(limb.health + effect.health_change)
                if effect.new_health_absolute is not None:
                    limb.health = _clamp(effect.new_health_absolute)
                limb.status = effect.new_status or f"Affected ({limb.health}HP)"
                if limb.name not in changed:
                    changed.append(limb.name)
            _recompute_health(character)
        return changed

    # ------------------------------------------------------------------
    # Inventory and location items
    # ------------------------------------------------------------------

    def add_to_inventory(self, items: Sequence[Item]) -> None:
        with self._mutate() as state:
            for item in items:
                _ensure_unowned(state, item, "add_to_inventory")
                state.inventory.append(item.model_copy(deep=True))

    def remove_from_inventory(self, item_id: str) -> Item:
        with self._mutate() as state:
            item = _pop_by_id(state.inventory, item_id, "remove_from_inventory")
        return item

    def remove_inventory_by_name(self, names: Sequence[str]) -> List[Item]:
        wanted = {name.lower() for name in names}
        with self._mutate() as state:
            removed = [item for item in state.inventory if item.name.lower() in wanted]
            state.inventory = [item for item in state.inventory if item.name.lower() not in wanted]
        return removed

    def set_location_items(self, items: Sequence[Item]) -> None:
        """Record the result of searching the current location for items."""
        with self._mutate() as state:
            entry = _current_entry(state, "set_location_items")
            entry.items = []
            for item in items:
                _ensure_unowned(state, item, "set_location_items")
                entry.items.append(item.model_copy(deep=True))

    def add_location_items(self, items: Sequence[Item]) -> None:
        with self._mutate() as state:
            entry = _current_entry(state, "add_location_items")
            if entry.items is None:
                entry.items = []
            for item in items:
                _ensure_unowned(state, item, "add_location_items")
                entry.items.append(item.model_copy(deep=True))

    def remove_location_items_by_name(self, names: Sequence[str]) -> List[Item]:
        wanted = {name.lower() for name in names}
        with self._mutate() as state:
            entry = _current_entry(state, "remove_location_items_by_name")
            current = entry.items or []
            removed = [item for item in current if item.name.lower() in wanted]
            if entry.items is not None:
                entry.items = [item for item in current if item.name.lower() not in wanted]
        return removed

    def pickup_item(self, item_id: str) -> Item:
        """Move an item from the current location into the inventory."""
        with self._mutate() as state:
            entry = _current_entry(state, "pickup_item")
            item = _pop_by_id(entry.items or [], item_id, "pickup_item")
            state.inventory.append(item)
        return item.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Equipment and crafting
    # ------------------------------------------------------------------

    def equip_item(self, item_id: str, limb_name: str) -> Item:
        with self._mutate() as state:
            character = _require_character(state, "equip_item")
            limb = character.limb(limb_name)
            if limb is None:
                raise StoreError("equip_item", f"no limb named {limb_name!r}")
            item = _pop_by_id(state.inventory, item_id, "equip_item")
            limb.equipped_items.append(item)
        return item.model_copy(deep=True)

    def unequip_item(self, item_id: str) -> Item:
        with self._mutate() as state:
            character = _require_character(state, "unequip_item")
            for limb in character.limbs:
                if any(item.id == item_id for item in limb.equipped_items):
                    item = _pop_by_id(limb.equipped_items, item_id, "unequip_item")
                    state.inventory.append(item)
                    break
            else:
                raise StoreError("unequip_item", f"item {item_id} is not equipped")
        return item.model_copy(deep=True)

    def place_in_crafting_slot(self, item_id: str, slot_index: int) -> Item:
        with self._mutate() as state:
            if not 0 <= slot_index < len(state.crafting_slots):
                raise StoreError("place_in_crafting_slot", f"slot {slot_index} does not exist")
            if state.crafting_slots[slot_index] is not None:
                raise StoreError("place_in_crafting_slot", f"slot {slot_index + 1} is occupied")
            item = _pop_by_id(state.inventory, item_id, "place_in_crafting_slot")
            state.crafting_slots[slot_index] = item
        return item.model_copy(deep=True)

    def remove_from_crafting_slot(self, slot_index: int) -> Optional[Item]:
        """Return the slotted item (if any) to the inventory."""
        with self._mutate() as state:
            if not 0 <= slot_index < len(state.crafting_slots):
                raise StoreError("remove_from_crafting_slot", f"slot {slot_index} does not exist")
            item = state.crafting_slots[slot_index]
            state.crafting_slots[slot_index] = None
            if item is not None:
                state.inventory.append(item)
        return item.model_copy(deep=True) if item else None

    def consume_crafting_slots(self) -> List[Item]:
        """Destroy every slotted item (they became the crafted result)."""
        with self._mutate() as state:
            consumed = [item for item in state.crafting_slots if item is not None]
            state.crafting_slots = [None] * len(state.crafting_slots)
        return consumed

    # ------------------------------------------------------------------
    # NPCs and conversation
    # ------------------------------------------------------------------

    def set_location_npcs(self, npcs: Sequence[NPC]) -> None:
        """Record the result of searching the current location for people."""
        with self._mutate() as state:
            entry = _current_entry(state, "set_location_npcs")
            entry.npcs = []
            for npc in npcs:
                for item in npc.inventory:
                    _ensure_unowned(state, item, "set_location_npcs")
                entry.npcs.append(npc.model_copy(deep=True))

    def add_location_npc(self, npc: NPC) -> None:
        with self._mutate() as state:
            entry = _current_entry(state, "add_location_npc")
            for item in npc.inventory:
                _ensure_unowned(state, item, "add_location_npc")
            if entry.npcs is None:
                entry.npcs = []
            entry.npcs.append(npc.model_copy(deep=True))

    def update_npc(
        self,
        npc_id: str,
        *,
        health_change: Optional[int] = None,
        is_defeated: Optional[bool] = None,
        disposition: Optional[str] = None,
        is_hidden_during_event: Optional[bool] = None,
    ) -> NPC:
        """Change NPC state; ends the conversation if the NPC drops out of reach."""
        with self._mutate() as state:
            npc = _require_npc(state, npc_id, "update_npc")
            if health_change:
                npc.current_health = max(0, min(npc.max_health, npc.current_health + health_change))
            if is_defeated is not None:
                npc.is_defeated = is_defeated
            if disposition:
                npc.disposition = disposition
            if is_hidden_during_event is not None:
                npc.is_hidden_during_event = is_hidden_during_event
            if state.talking_to_npc_id == npc.id and (npc.is_defeated or npc.is_hidden_during_event):
                state.talking_to_npc_id = None
            result = npc.model_copy(deep=True)
        return result

    def give_item_to_npc(self, item_id: str, npc_id: str) -> Item:
        with self._mutate() as state:
            npc = _require_npc(state, npc_id, "give_item_to_npc")
            item = _pop_by_id(state.inventory, item_id, "give_item_to_npc")
            npc.inventory.append(item)
        return item.model_copy(deep=True)

    def take_item_from_npc(self, npc_id: str, item_id: str) -> Item:
        with self._mutate() as state:
            npc = _require_npc(state, npc_id, "take_item_from_npc")
            item = _pop_by_id(npc.inventory, item_id, "take_item_from_npc")
            state.inventory.append(item)
        return item.model_copy(deep=True)

    def set_talking_to(self, npc_id: Optional[str]) -> None:
        with self._mutate() as state:
            if npc_id is not None:
                _require_npc(state, npc_id, "set_talking_to")
            state.talking_to_npc_id = npc_id

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def set_active_event(self, event: ActiveEvent) -> None:
        with self._mutate() as state:
            if state.active_event is not None:
                raise StoreError("set_active_event", "an event is already active")
            state.active_event = event.model_copy(deep=True)
            state.last_event_at = utcnow()

    def update_active_event(
        self,
        *,
        narration: Optional[str] = None,
        visual_hint: Optional[str] = None,
        resolution_criteria: Optional[str] = None,
        image_handle: Optional[str] = None,
    ) -> ActiveEvent:
        with self._mutate() as state:
            event = state.active_event
            if event is None:
                raise StoreError("update_active_event", "no event is active")
            if narration:
                event.effects.narration = narration
            if visual_hint:
                event.effects.visual_hint_for_event_image = visual_hint
            if resolution_criteria:
                event.effects.resolution_criteria_prompt = resolution_criteria
            if image_handle is not None:
                event.image_handle = image_handle
            result = event.model_copy(deep=True)
        return result

    def clear_active_event(self) -> Optional[ActiveEvent]:
        """End the active event; per-event NPC visibility flags reset."""
        with self._mutate() as state:
            event = state.active_event
            state.active_event = None
            for entry in state.visited_locations.values():
                for npc in entry.npcs or []:
                    npc.is_hidden_during_event = None
        return event

    # ------------------------------------------------------------------
    # Leads, chronicle, memory, director
    # ------------------------------------------------------------------

    def insert_lead(self, lead: PotentialDiscovery) -> PotentialDiscovery:
        with self._mutate() as state:
            if any(existing.id == lead.id for existing in state.leads):
                raise StoreError("insert_lead", f"lead {lead.id} already exists")
            if lead.status != "mentioned":
                raise StoreError("insert_lead", "new leads must start as 'mentioned'")
            state.leads.append(lead.model_copy(deep=True))
        return lead

    def fulfil_lead(self, lead_id: str, entity_id: str) -> PotentialDiscovery:
        """Mark a mentioned lead discovered. Discovered leads never change again."""
        with self._mutate() as state:
            for index, lead in enumerate(state.leads):
                if lead.id == lead_id:
                    break
            else:
                raise StoreError("fulfil_lead", f"unknown lead {lead_id}")
            if lead.status == "discovered":
                raise StoreError("fulfil_lead", f"lead {lead_id} is already discovered")
            if any(other.fulfilled_by_id == entity_id for other in state.leads):
                raise StoreError("fulfil_lead", f"entity {entity_id} already fulfilled a lead")
            updated = lead.model_copy(update={"status": "discovered", "fulfilled_by_id": entity_id})
            state.leads[index] = PotentialDiscovery.model_validate(updated.model_dump())
            result = state.leads[index].model_copy(deep=True)
        return result

    def append_plot_point(
        self,
        summary: str,
        involved_entity_ids: Sequence[str] = (),
        location_name: Optional[str] = None,
    ) -> Optional[MajorPlotPoint]:
        """Append a chronicle entry; repeats of a very recent entry are dropped."""
        involved = tuple(sorted(set(involved_entity_ids)))
        for recent in self._state.chronicle[-PLOT_DUPLICATE_WINDOW:]:
            if (
                recent.summary.lower() == summary[:PLOT_SUMMARY_MAX_CHARS].lower()
                and tuple(sorted(recent.involved_entity_ids)) == involved
            ):
                return None
        point = MajorPlotPoint(
            summary=summary[:PLOT_SUMMARY_MAX_CHARS],
            involved_entity_ids=involved,
            location_name=location_name,
        )
        self._state.chronicle.append(point)
        return point

    def remember_entity(
        self,
        entity_id: str,
        name: str,
        entity_type: MemorableEntityType,
        rarity: str,
        description_hint: str,
        first_encountered_context: str,
    ) -> MemorableEntity:
        """Insert or refresh a memorable entity (longer hints win)."""
        with self._mutate() as state:
            existing = state.memorable_entities.get(entity_id)
            if existing and existing.name == name and existing.type == entity_type:
                if len(description_hint) > len(existing.description_hint):
                    existing.description_hint = description_hint[:ENTITY_HINT_MAX_CHARS]
                existing.first_encountered_context = first_encountered_context[:ENTITY_CONTEXT_MAX_CHARS]
                entity = existing
            else:
                entity = MemorableEntity(
                    id=entity_id,
                    name=name,
                    type=entity_type,
                    rarity=rarity,
                    description_hint=description_hint[:ENTITY_HINT_MAX_CHARS],
                    first_encountered_context=first_encountered_context[:ENTITY_CONTEXT_MAX_CHARS],
                )
                state.memorable_entities[entity_id] = entity
            result = entity.model_copy()
        return result

    def set_directive(self, directive: DirectorDirective) -> None:
        self._state.directive = directive.model_copy(deep=True)


# ----------------------------------------------------------------------
# Helpers operating on a draft GameState
# ----------------------------------------------------------------------

_EMPTY_ENTRY = VisitedLocationEntry(location=LocationData(name="", description=""))


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, int(value)))


def _recompute_health(character: Character) -> None:
    if character.limbs:
        character.overall_health = round(mean(limb.health for limb in character.limbs))
    character.is_defeated = character.overall_health <= 0


def _require_character(state: GameState, operation: str) -> Character:
    if state.character is None:
        raise StoreError(operation, "no character exists yet")
    return state.character


def _current_entry(state: GameState, operation: str) -> VisitedLocationEntry:
    entry = state.visited_locations.get(state.coordinates.key)
    if entry is None:
        raise StoreError(operation, f"current location {state.coordinates.key} is not cached")
    return entry


def _require_npc(state: GameState, npc_id: str, operation: str) -> NPC:
    entry = _current_entry(state, operation)
    for npc in entry.npcs or []:
        if npc.id == npc_id:
            return npc
    raise StoreError(operation, f"no NPC {npc_id} at {state.coordinates.key}")


def _pop_by_id(items: List[Item], item_id: str, operation: str) -> Item:
    for index, item in enumerate(items):
        if item.id == item_id:
            return items.pop(index)
    raise StoreError(operation, f"item {item_id} not found")


def _owners(state: GameState, item_id: str) -> List[str]:
    owners: List[str] = []
    if any(item.id == item_id for item in state.inventory):
        owners.append("inventory")
    for index, slotted in enumerate(state.crafting_slots):
        if slotted is not None and slotted.id == item_id:
            owners.append(f"crafting_slot:{index}")
    if state.character is not None:
        for limb in state.character.limbs:
            if any(item.id == item_id for item in limb.equipped_items):
                owners.append(f"limb:{limb.name}")
    for key, entry in state.visited_locations.items():
        if any(item.id == item_id for item in entry.items or []):
            owners.append(f"location:{key}")
        for npc in entry.npcs or []:
            if any(item.id == item_id for item in npc.inventory):
                owners.append(f"npc:{npc.id}")
    return owners


def _ensure_unowned(state: GameState, item: Item, operation: str) -> None:
    owners = _owners(state, item.id)
    if owners:
        raise StoreError(operation, f"item {item.id} is already held by {owners[0]}")
