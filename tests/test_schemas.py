"""Schema validation tests."""

import pytest
from pydantic import ValidationError

from taleweaver.content.models import EventDecision
from taleweaver.schemas import (
    Coordinates,
    DirectorDirective,
    EventEffects,
    ItemSuggestion,
    NpcSuggestion,
    PromptEnhancement,
    TargetSystem,
    experience_for_next_level,
)


def test_coordinates_key_round_trip():
    coords = Coordinates(x=-3, y=7)

    assert coords.key == "-3,7"
    assert Coordinates.from_key(" -3, 7") == coords
    assert coords.offset(1, -1) == Coordinates(x=-2, y=6)


def test_item_suggestion_gets_identity_and_hint():
    first = ItemSuggestion(name="Bone Flute", item_type_guess="instrument").to_item()
    second = ItemSuggestion(name="Bone Flute", item_type_guess="instrument").to_item()

    assert first.id != second.id
    assert first.visual_hint == "a instrument called Bone Flute"


def test_npc_suggestion_conversion():
    suggestion = NpcSuggestion(name="Raider", inventory=[ItemSuggestion(name="Knife")], skill_levels={"Combat": 3})

    spawned = suggestion.to_npc(event_spawned=True)
    regular = suggestion.to_npc()

    assert spawned.is_event_spawned is True
    assert spawned.is_hidden_during_event is False
    assert regular.is_hidden_during_event is None
    assert [item.name for item in regular.inventory] == ["Knife"]
    assert next(skill for skill in regular.skills if skill.name == "Combat").level == 3


def test_triggered_decision_needs_concept():
    with pytest.raises(ValidationError):
        EventDecision(should_trigger=True)
    assert EventDecision(should_trigger=False).concept is None


def test_rarity_is_validated():
    with pytest.raises(ValidationError):
        ItemSuggestion(name="Odd Rock", rarity="Mythic")


def test_event_effects_has_effects():
    flavor = EventEffects(event_title="A Fleeting Sensation", narration="A chill.")
    tense = EventEffects(event_title="Standoff", narration="...", requires_player_action_to_resolve=True)

    assert flavor.has_effects() is False
    assert tense.has_effects() is True


def test_directive_enhancement_lookup():
    directive = DirectorDirective(
        prompt_enhancements=[PromptEnhancement(target_system=TargetSystem.COMBAT_RESOLUTION, suggestion="Keep fights short.")]
    )

    assert directive.enhancement_for(TargetSystem.COMBAT_RESOLUTION) == "Keep fights short."
    assert directive.enhancement_for(TargetSystem.ITEM_GENERATION) is None


def test_experience_curve():
    assert [experience_for_next_level(level) for level in range(3)] == [100, 200, 300]
