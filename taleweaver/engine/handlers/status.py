"""Read-only queries: inventory and character status."""

from __future__ import annotations

from taleweaver.content.models import ParsedCommand

from .base import HandlerGroup


class StatusHandlers(HandlerGroup):
    async def inventory(self, command: ParsedCommand, raw_text: str) -> None:
        items = self.store.inventory
        if not items:
            self.store.log("system", "Your inventory is empty.")
            return
        listing = ", ".join(f"{item.name} ({item.rarity})" for item in items)
        self.store.log("system", f"You have: {listing}.")

    async def status(self, command: ParsedCommand, raw_text: str) -> None:
        character = self.store.character
        if character is None:
            self.store.log("error", "There is no character yet.")
            return
        limbs = "; ".join(f"{limb.name} ({limb.status}, {limb.health}HP)" for limb in character.limbs)
        self.store.log(
            "system",
            f"Overall Health: {character.overall_health}HP. "
            f"Energy: {character.current_energy}/{character.max_energy}EN. "
            f"Limbs: {limbs}.",
        )
        skills = ", ".join(f"{skill.name} {skill.level}" for skill in character.skills if skill.level > 0)
        if skills:
            self.store.log("system", f"Skills: {skills}.")
