"""
MemoryStrategy interface for the narrative memory handed to generation calls.

The game's long-term memory is the chronicle of plot points, the memorable
entities met so far and the leads still open. A strategy turns that into the
text block every content-service request carries, so generated content stays
consistent with what already happened.

Design principle: Start simple (most recent N), enable sophisticated
(relevance-ranked) strategies behind the same interface.
"""

from abc import ABC, abstractmethod
from typing import List

from taleweaver.store import WorldStateStore


class MemoryStrategy(ABC):
    """Abstract base class for memory-context builders."""

    @abstractmethod
    def context_string(self, store: WorldStateStore) -> str:
        """Render the memory context for the current game state."""


class RecentMemory(MemoryStrategy):
    """Most recent entities, plot points and open leads."""

    def __init__(self, entity_limit: int = 10, plot_limit: int = 10, lead_limit: int = 10) -> None:
        self.entity_limit = entity_limit
        self.plot_limit = plot_limit
        self.lead_limit = lead_limit

    def context_string(self, store: WorldStateStore) -> str:
        discovered = {lead.id for lead in store.leads if lead.status == "discovered"}
        entities = [
            entity
            for entity in store.memorable_entities
            if not (entity.type == "lore_hint" and entity.id in discovered)
        ][-self.entity_limit:]
        plot_points = store.chronicle[-self.plot_limit:]
        leads = store.unresolved_leads()[-self.lead_limit:]

        if not (entities or plot_points or leads):
            return "MEMORY CONTEXT: (nothing notable yet)"

        lines: List[str] = ["MEMORY CONTEXT:"]
        if entities:
            lines.append("Notable entities encountered:")
            lines.extend(
                f"- {e.name} ({e.type}, {e.rarity}): {e.description_hint}" for e in entities
            )
        if plot_points:
            lines.append("Key plot points so far:")
            lines.extend(f"- {point.summary}" for point in plot_points)
        if leads:
            lines.append("Recently mentioned leads:")
            lines.extend(
                f"- {lead.name} ({lead.type}): {lead.description_hint}" for lead in leads
            )
        return "\n".join(lines)
