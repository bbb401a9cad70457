"""Movement between grid locations."""

from __future__ import annotations

import random
import re
from typing import Dict, Optional, Tuple

from taleweaver.content.base import ContentServiceError
from taleweaver.content.models import EntityKind, NarrativeKind, ParsedCommand
from taleweaver.logging_utils import log_deterministic, log_error
from taleweaver.schemas import Coordinates, LocationData, TargetSystem

from .base import HandlerGroup, slug_part

MOVE_ENERGY_COST = 2

DIRECTION_ALIASES: Dict[str, str] = {
    "north": "north", "n": "north", "forward": "north", "forwards": "north",
    "south": "south", "s": "south", "backward": "south", "backwards": "south",
    "east": "east", "e": "east", "right": "east",
    "west": "west", "w": "west", "left": "west",
    "up": "up", "u": "up",
    "down": "down", "d": "down",
}

DIRECTION_DELTAS: Dict[str, Tuple[int, int]] = {
    "north": (0, 1),
    "south": (0, -1),
    "east": (1, 0),
    "west": (-1, 0),
    "up": (0, 0),
    "down": (0, 0),
}

OPPOSITE_DIRECTIONS = {"north": "south", "south": "north", "east": "west", "west": "east", "up": "down", "down": "up"}

LEAVE_AREA = "leave_area"
TERMINAL_LOCATION_MARKERS = ("afterlife", "limbo")

_COORDINATE_PATTERN = re.compile(r"\s*(-?\d+)\s*,\s*(-?\d+)\s*")


def canonical_direction(token: str) -> Optional[str]:
    return DIRECTION_ALIASES.get(token.strip().lower())


def canonical_exits(location: LocationData) -> list[str]:
    exits = []
    for exit_name in location.valid_exits:
        canonical = canonical_direction(exit_name)
        exits.append(canonical or exit_name.strip().lower())
    return exits


def allows_defeated_movement(location: Optional[LocationData]) -> bool:
    if location is None:
        return False
    name = location.name.lower()
    return any(marker in name for marker in TERMINAL_LOCATION_MARKERS)


class MovementHandlers(HandlerGroup):
    async def move(self, command: ParsedCommand, raw_text: str) -> None:
        store = self.store
        if store.is_event_active:
            store.log("system", "You must deal with the current event before moving!")
            return
        location = store.current_location
        character = store.character
        if location is None or character is None:
            store.log("error", "There is nowhere to move from yet.")
            return
        if character.is_defeated and not allows_defeated_movement(location):
            store.log("system", "You are too weak to move.")
            return

        token = self._direction_token(command)
        direction = canonical_direction(token)
        exits = canonical_exits(location)

        # A recognized direction without a matching exit is a failed-exit attempt: no cost.
        if direction is not None and direction not in exits:
            store.log(
                "error",
                f"Cannot move {token} from {location.name}. "
                f"Valid exits: {', '.join(location.valid_exits) or 'none'}.",
            )
            return

        self.spend_energy(MOVE_ENERGY_COST)

        if token == LEAVE_AREA:
            planar = [d for d in exits if DIRECTION_DELTAS.get(d, (0, 0)) != (0, 0)]
            if not planar:
                store.log("error", f"There is no way out of {location.name}.")
                return
            direction = random.choice(planar)

        destination = self._destination(token, direction)
        if destination is None:
            store.log("error", f"You can't make sense of the direction \"{token}\".")
            return
        if destination == store.coordinates:
            await self._narrate_movement(direction or token, location)
            return

        if store.has_visited(destination.key):
            await self._revisit(destination)
        else:
            await self._explore(destination, direction, location, command)

    # ------------------------------------------------------------------

    @staticmethod
    def _direction_token(command: ParsedCommand) -> str:
        if command.action.strip().lower() == LEAVE_AREA:
            return LEAVE_AREA
        token = command.first_target or command.parameters.on_target or ""
        return token.strip().lower()

    def _destination(self, token: str, direction: Optional[str]) -> Optional[Coordinates]:
        current = self.store.coordinates
        if direction is not None:
            dx, dy = DIRECTION_DELTAS[direction]
            return current.offset(dx, dy)
        match = _COORDINATE_PATTERN.fullmatch(token)
        if match:
            return Coordinates(x=int(match.group(1)), y=int(match.group(2)))
        return None

    async def _narrate_movement(self, direction: str, location: LocationData, origin: Optional[str] = None) -> None:
        """Movement narration; a failure is logged and nothing else changes."""
        store = self.store
        subject = {"direction": direction, "location": location.name}
        if origin is not None:
            subject["from"] = origin
        try:
            outcome = await self.services.content.generate_narrative_outcome(
                NarrativeKind.MOVEMENT, subject, self.services.context(TargetSystem.LOCATION_DESCRIPTION)
            )
        except ContentServiceError as exc:
            store.log("error", f"The way {direction} goes undescribed: {exc}")
            return
        store.log("narration", outcome.narration, processed_text=outcome.processed_text)

    async def _revisit(self, destination: Coordinates) -> None:
        store = self.store
        store.move_to(destination)
        location = store.current_location
        log_deterministic("Movement", f"Returning to cached location {destination.key}")
        store.log("system", f"You return to {location.name}.")
        store.log("narration", location.description, processed_text=location.processed_description)
        self.award_experience("Survival", 1)
        await self.trigger(f"revisited_location_{slug_part(location.name)}")

    async def _explore(
        self,
        destination: Coordinates,
        direction: Optional[str],
        origin: LocationData,
        command: ParsedCommand,
    ) -> None:
        store = self.store
        heading = direction or f"to {destination.key}"
        brief = f"The player travels {heading} from {origin.name}."
        if command.parameters.intended_location_type_hint:
            brief += f" They are looking for: {command.parameters.intended_location_type_hint}."
        back = OPPOSITE_DIRECTIONS.get(direction or "")
        if back:
            brief += f" Include an exit leading {back}."

        try:
            location = await self.services.content.generate_entity(
                EntityKind.LOCATION, self.services.context(TargetSystem.LOCATION_DESCRIPTION), brief
            )
        except ContentServiceError as exc:
            log_error("Movement", f"Location generation failed: {exc}")
            store.log("error", f"Failed to travel {heading}: {exc}")
            return
        if not isinstance(location, LocationData):
            store.log("error", f"Failed to travel {heading}: the path ahead is unclear.")
            return

        if back and back not in canonical_exits(location):
            location.valid_exits.append(back)
        location.image_handle = await self.services.illustrate(location.visual_hint, self.services.visual_style)

        lead = await self.services.ledger.link_entity_to_lead(
            destination.key, location.name, location.description, "location"
        )
        store.record_location(destination.key, location)
        store.move_to(destination)
        store.remember_entity(
            destination.key,
            location.name,
            "location",
            location.rarity,
            location.description,
            f"Reached by travelling {heading} from {origin.name}",
        )

        store.log("system", f"You arrive at {location.name}.")
        store.log("narration", location.description, processed_text=location.processed_description)
        store.log("game_event", f"Discovered: {location.name} (Rarity: {location.rarity})")
        await self._narrate_movement(heading, location, origin.name)
        if lead is not None:
            store.log("game_event", f"This must be the place hinted at: {lead.name}.")
        self.award_experience("Survival", 1)

        tags = "_".join(slug_part(tag) for tag in location.environment_tags)
        await self.trigger(f"moved_to_new_location_{location.rarity.lower()}_{tags}")
