"""
Pydantic schemas for the Taleweaver game engine.

Every piece of world state lives in one of these models. The world state
store owns a single ``GameState`` instance; components read deep copies and
write back through the store's mutation primitives.

Design Philosophy:
- Generated content (locations, items, NPCs, events) is validated on the way in
- "Not yet searched" (None) is distinct from "searched, found nothing" ([])
- Snapshots serialize with ``model_dump_json`` for persistence
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Shared vocabulary
# ============================================================================

Rarity = Literal["Common", "Uncommon", "Rare", "Epic", "Legendary"]
RARITY_ORDER: tuple[str, ...] = ("Common", "Uncommon", "Rare", "Epic", "Legendary")

LeadType = Literal["item", "npc", "location", "lore_hint"]
LeadStatus = Literal["mentioned", "discovered"]
LeadSourceType = Literal[
    "dialogue",
    "item_text",
    "contextual_examination",
    "event_narration",
    "initial_setup",
]
MemorableEntityType = Literal["character", "item", "location", "npc", "lore_hint"]
LogEntryType = Literal["command", "narration", "error", "system", "game_event", "combat"]

PREDEFINED_SKILLS: Dict[str, str] = {
    "Combat": "Proficiency in armed and unarmed fighting.",
    "Crafting": "Ability to combine and create items.",
    "Survival": "Endurance and know-how for travelling harsh terrain.",
    "Perception": "Noticing hidden details, people and objects.",
    "Persuasion": "Influencing others through speech and trade.",
    "Mobility": "Agility, climbing and moving with finesse.",
}

DEFAULT_LIMB_NAMES: tuple[str, ...] = (
    "Head",
    "Torso",
    "Left Arm",
    "Right Arm",
    "Left Leg",
    "Right Leg",
)


def experience_for_next_level(level: int) -> int:
    """Experience needed to advance from ``level`` to ``level + 1``."""
    return level * 100 + 100


# ============================================================================
# Coordinates
# ============================================================================


class Coordinates(BaseModel):
    """Integer grid position of a location."""

    model_config = ConfigDict(frozen=True)

    x: int = 0
    y: int = 0

    @property
    def key(self) -> str:
        return location_key(self.x, self.y)

    def offset(self, dx: int, dy: int) -> "Coordinates":
        return Coordinates(x=self.x + dx, y=self.y + dy)

    @classmethod
    def from_key(cls, key: str) -> "Coordinates":
        x_text, y_text = key.split(",")
        return cls(x=int(x_text.strip()), y=int(y_text.strip()))


def location_key(x: int, y: int) -> str:
    """Canonical visited-map key for a coordinate pair ("x,y")."""
    return f"{x},{y}"


# ============================================================================
# Items, characters and NPCs
# ============================================================================


class ItemSuggestion(BaseModel):
    """Item as proposed by the content service, before it gets an identity."""

    name: str
    rarity: Rarity = "Common"
    description: str = ""
    visual_hint: Optional[str] = None
    item_type_guess: str = "misc"

    def to_item(self) -> "Item":
        return Item(
            name=self.name,
            rarity=self.rarity,
            description=self.description,
            visual_hint=self.visual_hint or f"a {self.item_type_guess} called {self.name}",
            item_type_guess=self.item_type_guess,
        )


class Item(BaseModel):
    """A concrete item with an identity.

    An item is owned by exactly one container at a time: the inventory, a
    location's item list, an NPC inventory, a limb's equipped items or a
    crafting slot.
    """

    id: str = Field(default_factory=_new_id)
    name: str
    rarity: Rarity = "Common"
    description: str = ""
    processed_description: Optional[str] = Field(
        None, description="Description annotated with lore tags"
    )
    visual_hint: str = ""
    item_type_guess: str = "misc"
    image_handle: Optional[str] = None


class Skill(BaseModel):
    name: str
    description: str = ""
    level: int = Field(0, ge=0)
    experience: int = Field(0, ge=0)
    experience_to_next_level: int = Field(default_factory=lambda: experience_for_next_level(0))


class Limb(BaseModel):
    name: str
    health: int = Field(100, ge=0, le=100)
    status: str = "Healthy"
    equipped_items: List[Item] = Field(default_factory=list)


def default_skills(levels: Optional[Dict[str, int]] = None) -> List[Skill]:
    levels = levels or {}
    skills = []
    for name, description in PREDEFINED_SKILLS.items():
        level = max(0, int(levels.get(name, 0)))
        skills.append(
            Skill(
                name=name,
                description=description,
                level=level,
                experience_to_next_level=experience_for_next_level(level),
            )
        )
    return skills


def default_limbs() -> List[Limb]:
    return [Limb(name=name) for name in DEFAULT_LIMB_NAMES]


class Character(BaseModel):
    """The player character.

    ``overall_health`` and ``is_defeated`` are derived from limb health; only
    the world state store recomputes them.
    """

    id: str = Field(default_factory=_new_id)
    name: str
    concept: str
    rarity: Rarity = "Common"
    skills: List[Skill] = Field(default_factory=default_skills)
    limbs: List[Limb] = Field(default_factory=default_limbs)
    overall_health: int = 100
    current_energy: int = 100
    max_energy: int = 100
    is_defeated: bool = False
    setting_type: Literal["Fictional", "Historical"] = "Fictional"
    setting_context: Optional[str] = None
    visual_style: str = "Pixel Art"
    image_handle: Optional[str] = None

    def skill(self, name: str) -> Optional[Skill]:
        for skill in self.skills:
            if skill.name.lower() == name.lower():
                return skill
        return None

    def limb(self, name: str) -> Optional[Limb]:
        for limb in self.limbs:
            if limb.name.lower() == name.lower():
                return limb
        return None


class NPC(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    processed_description: Optional[str] = None
    rarity: Rarity = "Common"
    disposition: str = "Neutral"
    current_health: int = 100
    max_health: int = 100
    is_defeated: bool = False
    inventory: List[Item] = Field(default_factory=list)
    is_event_spawned: bool = False
    is_hidden_during_event: Optional[bool] = Field(
        None,
        description="Explicit visibility flag set by event effects; None means no effect was applied",
    )
    visual_hint: str = ""
    skills: List[Skill] = Field(default_factory=list)
    image_handle: Optional[str] = None


class NpcSuggestion(BaseModel):
    """NPC as proposed by the content service."""

    name: str
    description: str = ""
    rarity: Rarity = "Common"
    disposition: str = "Neutral"
    visual_hint: Optional[str] = None
    inventory: List[ItemSuggestion] = Field(default_factory=list)
    skill_levels: Dict[str, int] = Field(default_factory=dict)

    def to_npc(self, *, event_spawned: bool = False) -> NPC:
        return NPC(
            name=self.name,
            description=self.description,
            rarity=self.rarity,
            disposition=self.disposition,
            visual_hint=self.visual_hint or self.name,
            inventory=[suggestion.to_item() for suggestion in self.inventory],
            skills=default_skills(self.skill_levels),
            is_event_spawned=event_spawned,
            is_hidden_during_event=False if event_spawned else None,
        )


# ============================================================================
# Locations
# ============================================================================


class LocationData(BaseModel):
    name: str
    description: str
    processed_description: Optional[str] = None
    rarity: Rarity = "Common"
    environment_tags: List[str] = Field(default_factory=list)
    valid_exits: List[str] = Field(default_factory=list)
    visual_hint: str = ""
    image_handle: Optional[str] = None


class VisitedLocationEntry(BaseModel):
    """Cached location plus what has been found there.

    ``items``/``npcs`` of None mean the area was never searched; an empty
    list means it was searched and nothing turned up.
    """

    location: LocationData
    items: Optional[List[Item]] = None
    npcs: Optional[List[NPC]] = None


# ============================================================================
# Leads, chronicle and memory
# ============================================================================


class LeadHint(BaseModel):
    """A narrative hint extracted from generated text, not yet registered."""

    name: str
    type: LeadType
    description_hint: str = ""
    rarity_hint: Optional[str] = None
    source_text_snippet: str = ""
    source_type: LeadSourceType = "dialogue"


class PotentialDiscovery(LeadHint):
    """A registered lead ("potential discovery")."""

    id: str
    status: LeadStatus = "mentioned"
    source_entity_id: str
    first_mentioned_at: datetime = Field(default_factory=utcnow)
    first_mentioned_location_key: Optional[str] = None
    fulfilled_by_id: Optional[str] = None

    @model_validator(mode="after")
    def _fulfilment_matches_status(self) -> "PotentialDiscovery":
        if (self.status == "discovered") != (self.fulfilled_by_id is not None):
            raise ValueError("fulfilled_by_id must be set if and only if status is 'discovered'")
        return self


class MajorPlotPoint(BaseModel):
    """Immutable chronicle entry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    summary: str
    involved_entity_ids: tuple[str, ...] = ()
    location_name: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class MemorableEntity(BaseModel):
    id: str
    name: str
    type: MemorableEntityType
    rarity: str = "Common"
    description_hint: str = ""
    first_encountered_context: str = ""


class GameLogEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    type: LogEntryType
    text: str
    processed_text: Optional[str] = Field(None, description="Lore-annotated variant of text")
    timestamp: datetime = Field(default_factory=utcnow)


# ============================================================================
# Events
# ============================================================================


class LimbEffect(BaseModel):
    limb_name: str
    health_change: Optional[int] = None
    new_health_absolute: Optional[int] = None
    new_status: Optional[str] = None


class SkillXpGain(BaseModel):
    skill_name: str
    amount: int


class CharacterEffects(BaseModel):
    health_change: Optional[int] = Field(
        None, description="Applied to every limb, then overall health is recomputed"
    )
    energy_change: Optional[int] = None
    limb_effects: List[LimbEffect] = Field(default_factory=list)
    skill_xp_gains: List[SkillXpGain] = Field(default_factory=list)


class ItemEffects(BaseModel):
    items_added_to_inventory: List[ItemSuggestion] = Field(default_factory=list)
    items_removed_from_inventory_by_name: List[str] = Field(default_factory=list)
    items_added_to_location: List[ItemSuggestion] = Field(default_factory=list)
    items_removed_from_location_by_name: List[str] = Field(default_factory=list)


class LocationEffects(BaseModel):
    description_change: Optional[str] = None
    environment_tag_added: Optional[str] = None
    environment_tag_removed: Optional[str] = None
    new_temporary_npc: Optional[NpcSuggestion] = None


class NpcEffect(BaseModel):
    npc_id_targeted: str
    health_change: Optional[int] = None
    is_defeated: Optional[bool] = None
    disposition_change: Optional[str] = None
    dialogue_override: Optional[str] = None
    is_hidden_during_event: Optional[bool] = None


class WorldEffects(BaseModel):
    time_passes: Optional[str] = None
    weather_changes: Optional[str] = None


class EventEffects(BaseModel):
    """Generated bundle of changes an event applies to the world."""

    event_title: str
    narration: str
    combat_narration: Optional[str] = None
    character_effects: Optional[CharacterEffects] = None
    item_effects: Optional[ItemEffects] = None
    location_effects: Optional[LocationEffects] = None
    npc_effects: List[NpcEffect] = Field(default_factory=list)
    world_effects: Optional[WorldEffects] = None
    major_plot_point_summary: Optional[str] = None
    involved_entity_ids_for_plot_point: List[str] = Field(default_factory=list)
    visual_hint_for_event_image: Optional[str] = None
    requires_player_action_to_resolve: bool = False
    resolution_criteria_prompt: Optional[str] = None
    potential_discoveries_generated: List[LeadHint] = Field(default_factory=list)

    def has_effects(self) -> bool:
        """True when anything beyond flavor text would change."""
        return bool(
            self.character_effects
            or self.item_effects
            or self.location_effects
            or self.npc_effects
            or self.major_plot_point_summary
            or self.requires_player_action_to_resolve
        )


class ActiveEvent(BaseModel):
    effects: EventEffects
    origin: Literal["unexpected", "player_action"] = "unexpected"
    target_npc_id: Optional[str] = None
    image_handle: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)


class DispositionUpdate(BaseModel):
    npc_id: str
    new_disposition: str


class PlayerInitiatedAction(BaseModel):
    """A deliberate escalation by the player, such as attacking an NPC."""

    action_type: Literal["attack_npc"] = "attack_npc"
    target_npc_id: str


# ============================================================================
# Director
# ============================================================================


class GameFocus(str, Enum):
    SURVIVAL_HORROR = "SurvivalHorror"
    DETECTIVE_MYSTERY = "DetectiveMystery"
    HIGH_STAKES_COMBAT = "HighStakesCombat"
    SOCIAL_INTRIGUE = "SocialIntrigue"
    EXPLORATION_ADVENTURE = "ExplorationAdventure"
    RESOURCE_MANAGEMENT = "ResourceManagement"
    PUZZLE_SOLVING = "PuzzleSolving"
    SPORTS_MATCH_FOCUS = "SportsMatchFocus"
    POLITICAL_INTRIGUE = "PoliticalIntrigue"
    STEALTH_OPERATIONS = "StealthOperations"
    HUMOROUS_ADVENTURE = "HumorousAdventure"
    PHILOSOPHICAL_DEBATE = "PhilosophicalDebate"
    ROMANTIC_PURSUIT = "RomanticPursuit"
    TRAGEDY_UNFOLDING = "TragedyUnfolding"
    PERSONAL_GROWTH_JOURNEY = "PersonalGrowthJourney"
    FACTION_CONFLICT = "FactionConflict"
    BASE_BUILDING_DEFENSE = "BaseBuildingDefense"
    NO_SPECIFIC_FOCUS = "NoSpecificFocus"
    CUSTOM_SCENARIO = "CustomScenario"


class TargetSystem(str, Enum):
    """Content-generation call sites a directive can bias."""

    EVENT_GENERATION = "EventGeneration"
    NPC_INTERACTION = "NPCInteraction"
    COMBAT_RESOLUTION = "CombatResolution"
    LOCATION_DESCRIPTION = "LocationDescription"
    ITEM_GENERATION = "ItemGeneration"
    PLAYER_VITALS = "PlayerVitals"
    GAME_LOG_NARRATION = "GameLogNarration"
    WORLD_PROGRESSION = "WorldProgression"


class PromptEnhancement(BaseModel):
    target_system: TargetSystem
    suggestion: str


class GameplayParameterSuggestions(BaseModel):
    focus_on_resource_scarcity: Optional[bool] = None
    adjust_energy_decay_rate: Optional[float] = None
    adjust_health_regen_rate: Optional[float] = None
    preferred_event_type: Optional[str] = None
    increase_narrative_length_for_scenario: Optional[str] = None
    trigger_chance_modifier_for_good_events: Optional[float] = None
    trigger_chance_modifier_for_bad_events: Optional[float] = None
    npc_disposition_volatility: Optional[Literal["low", "medium", "high"]] = None
    custom_focus_description: Optional[str] = None
    attention_to_detail_level: Optional[Literal["low", "medium", "high"]] = None
    dialogue_style: Optional[str] = None
    pacing: Optional[Literal["slow", "moderate", "fast"]] = None


class DirectorAnalysis(BaseModel):
    """What the content service returns from a director analysis."""

    current_game_focus: GameFocus = GameFocus.NO_SPECIFIC_FOCUS
    gameplay_parameter_suggestions: GameplayParameterSuggestions = Field(
        default_factory=GameplayParameterSuggestions
    )
    prompt_enhancements: List[PromptEnhancement] = Field(default_factory=list)
    reasoning: str = ""


class DirectorDirective(DirectorAnalysis):
    """A stored directive with its bookkeeping."""

    directive_id: str = Field(default_factory=_new_id)
    timestamp: datetime = Field(default_factory=utcnow)
    analyzed_command_count: int = 0

    def enhancement_for(self, target: TargetSystem) -> Optional[str]:
        for enhancement in self.prompt_enhancements:
            if enhancement.target_system == target:
                return enhancement.suggestion
        return None


# ============================================================================
# Whole-game state
# ============================================================================

NUM_CRAFTING_SLOTS = 3


class GameState(BaseModel):
    """Everything the world state store owns; also the persisted snapshot."""

    game_id: str = Field(default_factory=_new_id)
    character: Optional[Character] = None
    coordinates: Coordinates = Field(default_factory=Coordinates)
    previous_coordinates: Optional[Coordinates] = None
    visited_locations: Dict[str, VisitedLocationEntry] = Field(default_factory=dict)
    inventory: List[Item] = Field(default_factory=list)
    crafting_slots: List[Optional[Item]] = Field(
        default_factory=lambda: [None] * NUM_CRAFTING_SLOTS
    )
    talking_to_npc_id: Optional[str] = None
    active_event: Optional[ActiveEvent] = None
    last_event_at: Optional[datetime] = None
    leads: List[PotentialDiscovery] = Field(default_factory=list)
    chronicle: List[MajorPlotPoint] = Field(default_factory=list)
    memorable_entities: Dict[str, MemorableEntity] = Field(default_factory=dict)
    directive: Optional[DirectorDirective] = None
    player_command_count: int = 0
    log: List[GameLogEntry] = Field(default_factory=list)
