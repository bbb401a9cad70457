"""Request and response shapes exchanged with the content service."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from taleweaver.schemas import (
    ActiveEvent,
    Character,
    DispositionUpdate,
    Item,
    ItemSuggestion,
    LeadHint,
    LocationData,
    NPC,
    NpcSuggestion,
    PotentialDiscovery,
    Rarity,
    default_skills,
)


# ============================================================================
# Context handed to every generation call
# ============================================================================


class ContextSnapshot(BaseModel):
    """Read-only view of the game assembled before each content call."""

    character: Optional[Character] = None
    location: Optional[LocationData] = None
    location_key: str = "0,0"
    visible_items: List[Item] = Field(default_factory=list)
    visible_npcs: List[NPC] = Field(default_factory=list)
    inventory: List[Item] = Field(default_factory=list)
    talking_to: Optional[NPC] = None
    active_event: Optional[ActiveEvent] = None
    recent_log: List[str] = Field(default_factory=list)
    unresolved_leads: List[PotentialDiscovery] = Field(default_factory=list)
    memory_context: str = ""
    director_focus: Optional[str] = None
    director_guidance: Optional[str] = None

    def summary(self) -> str:
        """Compact human-readable digest used inside prompts."""
        lines: List[str] = []
        if self.character:
            c = self.character
            lines.append(
                f"Character: {c.name} ({c.rarity}) - {c.concept}. Health {c.overall_health}HP, "
                f"energy {c.current_energy}/{c.max_energy}EN"
                + (" [DEFEATED]" if c.is_defeated else "")
            )
        if self.location:
            lines.append(f"Location [{self.location_key}]: {self.location.name} - {self.location.description}")
            if self.location.valid_exits:
                lines.append(f"Exits: {', '.join(self.location.valid_exits)}")
        if self.visible_items:
            lines.append("Items here: " + ", ".join(f"{i.name} ({i.rarity})" for i in self.visible_items))
        if self.visible_npcs:
            lines.append(
                "People here: "
                + ", ".join(f"{n.name} ({n.rarity}, {n.disposition}, id={n.id})" for n in self.visible_npcs)
            )
        if self.inventory:
            lines.append("Inventory: " + ", ".join(f"{i.name} ({i.rarity})" for i in self.inventory))
        if self.talking_to:
            lines.append(f"Currently talking to: {self.talking_to.name}")
        if self.active_event:
            lines.append(f"Active event: {self.active_event.effects.event_title}")
        if self.recent_log:
            lines.append("Recent log:\n" + "\n".join(f"- {text}" for text in self.recent_log))
        if self.unresolved_leads:
            lines.append(
                "Unresolved leads: "
                + "; ".join(f"{lead.name} ({lead.type}): {lead.description_hint}" for lead in self.unresolved_leads)
            )
        return "\n".join(lines)


# ============================================================================
# Intent parsing
# ============================================================================


class CommandParameters(BaseModel):
    """Targets and parameters extracted from free-text input."""

    with_item: Optional[str] = None
    on_target: Optional[str] = None
    is_limb_target: bool = False
    interaction_type: Optional[str] = None
    npc_target_name: Optional[str] = None
    dialogue_text: Optional[str] = None
    item_to_give_name: Optional[str] = None
    target_npc_name_for_interaction: Optional[str] = None
    item_to_request_name: Optional[str] = None
    target_npc_name_for_request: Optional[str] = None
    direct_object_npc_id: Optional[str] = None
    intended_location_type_hint: Optional[str] = None
    examine_detail_target: Optional[str] = None
    limb_name: Optional[str] = None
    slot_index: Optional[int] = Field(None, description="1-based crafting slot")


class ParsedCommand(BaseModel):
    is_plausible: bool = True
    reason_if_not_plausible: Optional[str] = None
    action: str
    targets: List[str] = Field(default_factory=list)
    parameters: CommandParameters = Field(default_factory=CommandParameters)
    narration_for_plausible_action: Optional[str] = None

    @property
    def first_target(self) -> Optional[str]:
        return self.targets[0] if self.targets else None


# ============================================================================
# Narrative outcomes
# ============================================================================


class NarrativeKind(str, Enum):
    DIALOGUE = "dialogue"
    PICKUP = "pickup"
    ITEM_USE = "item_use"
    CRAFTING = "crafting"
    EXAMINATION = "examination"
    MOVEMENT = "movement"
    GIFT = "gift"
    REQUEST = "request"


class NarrativeOutcome(BaseModel):
    """Narration plus whatever structured consequences the kind allows."""

    narration: str
    raw_text: Optional[str] = Field(None, description="Spoken line or examined text, unannotated")
    processed_text: Optional[str] = Field(None, description="raw_text with lore tags")
    new_leads: List[LeadHint] = Field(default_factory=list)

    # Gift/request outcomes
    accepted: Optional[bool] = None
    offered_item: Optional[ItemSuggestion] = None
    disposition_change: Optional[str] = None

    # Item use outcomes
    item_consumed: bool = False
    health_change: Optional[int] = None
    energy_change: Optional[int] = None
    limb_target: Optional[str] = None

    # Crafting outcomes
    crafted_item: Optional[ItemSuggestion] = None


# ============================================================================
# Entities
# ============================================================================


class EntityKind(str, Enum):
    CHARACTER = "character"
    LOCATION = "location"
    ITEM = "item"
    NPC = "npc"


class CharacterDraft(BaseModel):
    name: str
    concept: str
    rarity: Rarity = "Common"
    skill_levels: Dict[str, int] = Field(default_factory=dict)
    max_energy: int = Field(100, ge=1)
    setting_type: Literal["Fictional", "Historical"] = "Fictional"
    setting_context: Optional[str] = None
    visual_style: str = "Pixel Art"

    def to_character(self) -> Character:
        return Character(
            name=self.name,
            concept=self.concept,
            rarity=self.rarity,
            skills=default_skills(self.skill_levels),
            current_energy=self.max_energy,
            max_energy=self.max_energy,
            setting_type=self.setting_type,
            setting_context=self.setting_context,
            visual_style=self.visual_style,
        )


class ItemBatch(BaseModel):
    items: List[ItemSuggestion] = Field(default_factory=list)


class NpcBatch(BaseModel):
    npcs: List[NpcSuggestion] = Field(default_factory=list)


# ============================================================================
# Events
# ============================================================================


class EventDecision(BaseModel):
    should_trigger: bool = False
    concept: Optional[str] = None
    intensity: Literal["low", "medium", "high"] = "low"

    @model_validator(mode="after")
    def _concept_required_when_triggered(self) -> "EventDecision":
        if self.should_trigger and not (self.concept and self.concept.strip()):
            raise ValueError("concept is required when should_trigger is true")
        return self


class EventResolution(BaseModel):
    resolved: bool = False
    progressed: bool = False
    resolution_narration: str = ""
    next_stage_narration: Optional[str] = None
    next_stage_visual_hint: Optional[str] = None
    items_awarded: List[ItemSuggestion] = Field(default_factory=list)
    disposition_update: Optional[DispositionUpdate] = None
    major_plot_point_summary: Optional[str] = None


class LeadMatch(BaseModel):
    lead_id: Optional[str] = None


class OpeningScene(BaseModel):
    """Narration and initial leads for a freshly started game."""

    narration: str = ""
    leads: List[LeadHint] = Field(default_factory=list)
