"""Prompt templates for each content-service entry point."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass
class PromptTemplate:
    """Represents a templated prompt with placeholders."""

    name: str
    system: str
    user: str
    description: str = ""


class PromptLibrary:
    """Container for named prompt templates per content-service operation."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        return self.templates[name]


_GAME_MASTER = (
    "You are the game master of a text adventure whose world is generated as the player explores. "
    "Stay consistent with everything already established in the context and memory. "
    "Always respond with JSON matching the requested schema and nothing else."
)

_CONTEXT_BLOCK = (
    "Game context:\n{{context_summary}}\n\n"
    "{{memory_context}}\n\n"
    "Director guidance: {{director_guidance}}\n\n"
)

_LORE_TAGS = (
    "Wrap notable names in lore tags inside processed text, e.g. "
    "<lore type=\"npc\" name=\"Old Mara\">Old Mara</lore>. Whenever the text hints at something "
    "not yet seen (a person, place, item or piece of lore), add it to new_leads with a short "
    "description_hint and the exact source_text_snippet."
)

DEFAULT_PROMPTS = PromptLibrary()

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="parse_intent",
        system=(
            "You interpret player commands for a text adventure. Map the input to one action from the "
            "catalog and extract targets and parameters. Judge plausibility against the current state "
            "only: if the action is impossible right now, set is_plausible=false and explain why in "
            "reason_if_not_plausible. If the input contains a flavorful nuance the engine cannot model, "
            "describe it in narration_for_plausible_action."
        ),
        user=(
            _CONTEXT_BLOCK
            + "Action catalog: {{actions}}\n\n"
            "Player input: \"{{raw_text}}\"\n\n"
            "Example output:\n"
            "{\"is_plausible\": true, \"action\": \"go\", \"targets\": [\"north\"], "
            "\"parameters\": {}, \"narration_for_plausible_action\": null}\n\n"
            "Return JSON only."
        ),
        description="Free text to ParsedCommand.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="narrative_outcome",
        system=_GAME_MASTER + " " + _LORE_TAGS,
        user=(
            _CONTEXT_BLOCK
            + "Narrate the outcome of a {{kind}} action.\n"
            "Subject:\n{{subject_json}}\n\n"
            "Fill only the outcome fields that apply to this kind: gift/request use accepted, "
            "offered_item and disposition_change; item use uses item_consumed, health_change, "
            "energy_change and limb_target; crafting uses crafted_item; dialogue puts the spoken line "
            "in raw_text and the annotated line in processed_text.\n\n"
            "Return NarrativeOutcome JSON only."
        ),
        description="Narration for dialogue, pickup, item use, crafting, examination, movement, gifts and requests.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="generate_entity",
        system=_GAME_MASTER,
        user=(
            _CONTEXT_BLOCK
            + "Create one {{kind}}.\n"
            "Brief: {{brief}}\n\n"
            "Rarity must be one of Common, Uncommon, Rare, Epic, Legendary; higher tiers are rarer. "
            "If an unresolved lead fits naturally, you may fulfil it.\n\n"
            "Return JSON only."
        ),
        description="Generates a single character, location, item or NPC.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="generate_entities",
        system=_GAME_MASTER,
        user=(
            _CONTEXT_BLOCK
            + "The player searches the area. Create between 0 and {{max_count}} {{kind}} entries that "
            "plausibly belong here. An empty list is a valid answer.\n"
            "Brief: {{brief}}\n\n"
            "Return JSON only."
        ),
        description="Item or NPC search results for the current location.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="event_trigger",
        system=(
            _GAME_MASTER
            + " Decide whether a contextual trigger escalates into an unexpected event. Most triggers "
            "should not. When one does, give a short event concept and an intensity (low, medium, high)."
        ),
        user=(
            _CONTEXT_BLOCK
            + "Trigger: {{trigger}}\n\n"
            "Example output:\n"
            "{\"should_trigger\": true, \"concept\": \"a sudden rockslide blocks the pass\", \"intensity\": \"medium\"}\n\n"
            "Return JSON only."
        ),
        description="Trigger decision for unexpected events.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="event_effects",
        system=(
            _GAME_MASTER
            + " Turn an event concept into concrete effects. Only reference NPC ids that appear in the "
            "context. Set requires_player_action_to_resolve=true only when the player must respond, "
            "and then describe what would resolve it in resolution_criteria_prompt. "
            + _LORE_TAGS.replace("new_leads", "potential_discoveries_generated")
        ),
        user=(
            _CONTEXT_BLOCK
            + "Event concept: {{concept}}\n"
            "Intensity: {{intensity}}\n\n"
            "Return EventEffects JSON only."
        ),
        description="Effect bundle for a triggered event.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="action_consequences",
        system=(
            _GAME_MASTER
            + " The player deliberately escalated the situation. Generate the consequences as an "
            "EventEffects bundle: damage to the player goes in character_effects.limb_effects, damage "
            "to the target in npc_effects. Mark the target defeated when it can no longer fight. Set "
            "requires_player_action_to_resolve=true while the confrontation continues."
        ),
        user=(
            _CONTEXT_BLOCK
            + "Player action:\n{{action_json}}\n\n"
            "Target:\n{{target_json}}\n\n"
            "Return EventEffects JSON only."
        ),
        description="Consequences of player-initiated escalations such as attacks.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="event_resolution",
        system=(
            _GAME_MASTER
            + " Judge whether the player's input resolves the active event according to its resolution "
            "criteria. resolved=true ends the event; progressed=true advances it with "
            "next_stage_narration; both false means nothing changed."
        ),
        user=(
            _CONTEXT_BLOCK
            + "Active event:\n{{event_json}}\n\n"
            "Player input: \"{{player_input}}\"\n\n"
            "Return EventResolution JSON only."
        ),
        description="Resolution check for events awaiting player action.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="lead_link",
        system=(
            "You match newly generated game entities against narrative leads. A lead matches when the "
            "entity is plausibly what the hint was pointing at, even if the wording differs. Return at "
            "most one lead id, or null when nothing fits."
        ),
        user=(
            "Entity ({{entity_type}}):\n{{entity_json}}\n\n"
            "Unresolved leads:\n{{leads_json}}\n\n"
            "Example output: {\"lead_id\": null}\n\n"
            "Return JSON only."
        ),
        description="Semantic lead matching for the discovery ledger.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="director",
        system=(
            "You are the game director. Review the player's recent history and decide what kind of game "
            "they are enjoying. Pick current_game_focus from the allowed labels, suggest gameplay "
            "parameters and write one prompt enhancement per target system that should change. "
            "Explain your reasoning briefly."
        ),
        user=(
            _CONTEXT_BLOCK
            + "Recent history:\n{{history}}\n\n"
            "Previous directive:\n{{previous_directive}}\n\n"
            "Return DirectorAnalysis JSON only."
        ),
        description="Periodic meta-analysis producing directive bias.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="opening",
        system=_GAME_MASTER + " " + _LORE_TAGS.replace("new_leads", "leads"),
        user=(
            _CONTEXT_BLOCK
            + "Write the opening scene for {{character_json}} arriving at {{location_json}}. "
            "Plant two or three leads worth following.\n\n"
            "Return OpeningScene JSON only."
        ),
        description="Opening narration and initial leads.",
    )
)
