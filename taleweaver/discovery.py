"""
Discovery ledger: narrative leads and their fulfilment by generated entities.

Generated text keeps hinting at things the player has not seen yet ("the
hermit by the falls", "a key to the old door"). Those hints become leads. When
the world later generates a concrete item, NPC or location, the ledger asks the
content service whether it fulfils one of the open leads of the same type.

The ledger computes; the world state store owns the lead records.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .content.base import ContentService, ContentServiceError
from .logging_utils import log_deterministic, log_error, log_success
from .schemas import LeadHint, PotentialDiscovery
from .store import WorldStateStore


def lead_id_for(origin_id: str, name: str, lead_type: str) -> str:
    """Stable lead identity derived from where the hint came from."""
    return f"{origin_id}-{name.replace(' ', '_').lower()}-{lead_type}"


class DiscoveryLedger:
    """Registers leads, marks them found and links new entities to them."""

    def __init__(self, store: WorldStateStore, content: ContentService) -> None:
        self.store = store
        self.content = content

    def add_lead(self, hint: LeadHint, origin_id: str, location_key: str) -> PotentialDiscovery:
        """Register a mentioned lead, or return the existing one for the same hint.

        A lead with the same id, or the same (case-insensitive) name and type,
        is treated as the same conceptual entity and returned unchanged.
        """
        lead_id = lead_id_for(origin_id, hint.name, hint.type)
        for existing in self.store.leads:
            if existing.id == lead_id or (
                existing.type == hint.type and existing.name.lower() == hint.name.lower()
            ):
                return existing

        lead = PotentialDiscovery(
            id=lead_id,
            name=hint.name,
            type=hint.type,
            description_hint=hint.description_hint,
            rarity_hint=hint.rarity_hint,
            source_text_snippet=hint.source_text_snippet,
            source_type=hint.source_type,
            source_entity_id=origin_id,
            first_mentioned_location_key=location_key,
        )
        self.store.insert_lead(lead)
        self.store.remember_entity(
            lead.id,
            lead.name,
            "lore_hint",
            lead.rarity_hint or "Common",
            lead.description_hint,
            f"Mentioned via {lead.source_type}: {lead.source_text_snippet}",
        )
        log_deterministic("Ledger", f"New lead: {lead.name} ({lead.type})")
        return lead

    def add_leads(
        self,
        hints: Sequence[LeadHint],
        origin_id: str,
        location_key: str,
    ) -> List[PotentialDiscovery]:
        return [self.add_lead(hint, origin_id, location_key) for hint in hints]

    def mark_found(self, lead_id: str, entity_id: str) -> bool:
        """Mark a lead discovered. Returns False (and changes nothing) if it cannot be."""
        lead = self.store.get_lead(lead_id)
        if lead is None or lead.status == "discovered":
            return False
        if any(other.fulfilled_by_id == entity_id for other in self.store.leads):
            return False
        self.store.fulfil_lead(lead_id, entity_id)
        log_success("Ledger", f"Lead fulfilled: {lead.name} -> {entity_id}")
        return True

    async def link_entity_to_lead(
        self,
        entity_id: str,
        name: str,
        description: str,
        entity_type: str,
    ) -> Optional[PotentialDiscovery]:
        """Ask the content service whether a new entity fulfils an open lead.

        At most one lead is fulfilled per call. Matching failures are logged and
        treated as "no match" so the entity still appears.
        """
        candidates = self.store.unresolved_leads(entity_type)
        if not candidates:
            return None
        try:
            lead_id = await self.content.link_entity_to_lead(name, description, entity_type, candidates)
        except ContentServiceError as exc:
            log_error("Ledger", f"Lead matching for {name} failed: {exc}")
            return None
        if lead_id is None or lead_id not in {lead.id for lead in candidates}:
            return None
        if not self.mark_found(lead_id, entity_id):
            return None
        return self.store.get_lead(lead_id)
