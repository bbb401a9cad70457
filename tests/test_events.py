"""Tests for unexpected events, player escalations and event resolution."""

import pytest

from taleweaver.content.models import EventDecision, EventResolution
from taleweaver.engine.context import is_npc_visible
from taleweaver.engine.events import NOTHING_HAPPENS_MESSAGE, is_trigger_eligible
from taleweaver.schemas import (
    NPC,
    CharacterEffects,
    EventEffects,
    ItemEffects,
    ItemSuggestion,
    LeadHint,
    LocationEffects,
    NpcEffect,
    NpcSuggestion,
)


def texts(entries):
    return [entry.text for entry in entries]


def test_trigger_eligibility():
    assert is_trigger_eligible("dialogue_interaction_with_epic_npc_Zed")
    assert is_trigger_eligible("moved_to_new_location_legendary_ruins")
    assert is_trigger_eligible("event_storm")
    assert is_trigger_eligible("game_start_common_Ari")
    assert not is_trigger_eligible("item_pickup_common_rope")
    assert not is_trigger_eligible("dialogue_response_from_mara_rarity_Rare")


def test_npc_visibility_during_events():
    plain = NPC(name="Villager")
    spawned = NPC(name="Raider", is_event_spawned=True)
    unhidden = NPC(name="Guide", is_hidden_during_event=False)
    hidden = NPC(name="Coward", is_hidden_during_event=True)

    assert all(is_npc_visible(npc, event_active=False) for npc in (plain, spawned, unhidden, hidden))
    assert [npc.name for npc in (plain, spawned, unhidden, hidden) if is_npc_visible(npc, True)] == [
        "Raider",
        "Guide",
    ]


@pytest.mark.asyncio
async def test_declined_trigger_logs_flavor_only(content, start_session):
    session = await start_session()
    before = session.store.snapshot()
    content.decisions.append(EventDecision(should_trigger=False))

    fired = await session.events.attempt_unexpected_event("dialogue_interaction_with_epic_npc_Zed")

    store = session.store
    assert fired is False
    assert store.active_event is None
    assert content.count("generate_event_effects") == 0
    assert texts(store.recent_log(2)) == ["You feel a change in the air...", NOTHING_HAPPENS_MESSAGE]
    after = store.snapshot()
    assert after.character == before.character
    assert after.inventory == before.inventory
    assert after.chronicle == before.chronicle


@pytest.mark.asyncio
async def test_low_rarity_trigger_never_reaches_content(content, start_session):
    session = await start_session()

    assert await session.events.attempt_unexpected_event("item_pickup_common_rope") is False
    assert content.calls == []


@pytest.mark.asyncio
async def test_nothing_happens_sentinel(content, start_session):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="a breeze"))
    content.event_effects.append(EventEffects(event_title="All Remains Calm", narration="A breeze."))

    assert await session.events.attempt_unexpected_event("event_breeze") is False

    assert session.store.active_event is None
    assert session.store.recent_log(1)[0].text == NOTHING_HAPPENS_MESSAGE


@pytest.mark.asyncio
async def test_immediate_event_applies_effects_and_folds_into_chronicle(content, start_session):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="rockfall", intensity="medium"))
    content.event_effects.append(
        EventEffects(
            event_title="Rockfall",
            narration="Stones crash down around you.",
            character_effects=CharacterEffects(health_change=-10, energy_change=-5),
            item_effects=ItemEffects(items_added_to_location=[ItemSuggestion(name="Geode", rarity="Rare")]),
            major_plot_point_summary="The pass is half buried.",
            potential_discoveries_generated=[LeadHint(name="Buried Shrine", type="location")],
        )
    )

    fired = await session.events.attempt_unexpected_event("event_rockfall")

    store = session.store
    assert fired is True
    assert store.active_event is None
    assert store.character.overall_health == 90
    assert store.character.current_energy == 95
    assert [item.name for item in store.location_items] == ["Geode"]
    [point] = store.chronicle
    assert point.summary.startswith('Event Occurred: "Rockfall". Stones crash down around you.')
    assert store.character.id in point.involved_entity_ids
    assert [lead.name for lead in store.unresolved_leads("location")] == ["Buried Shrine"]
    assert "EVENT: Rockfall" in texts(store.log_entries)


@pytest.mark.asyncio
async def test_event_generation_failure_is_logged(content, start_session):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="storm"))
    content.failures.add("generate_event_effects")

    assert await session.events.attempt_unexpected_event("event_storm") is False

    assert session.store.active_event is None
    last = session.store.recent_log(1)[0]
    assert last.type == "error"
    assert last.text.startswith("Event generation failed:")


@pytest.mark.asyncio
async def test_events_gate_blocks_overlapping_generation(content, start_session):
    session = await start_session()

    async with session.scheduler.events.hold():
        assert session.events.generating is True
        assert await session.events.attempt_unexpected_event("event_storm") is False

    assert content.calls == []
    assert session.events.generating is False


def standoff() -> EventEffects:
    return EventEffects(
        event_title="Standoff at the Bridge",
        narration="A masked toll-keeper bars the way.",
        location_effects=LocationEffects(new_temporary_npc=NpcSuggestion(name="Toll-keeper", rarity="Epic")),
        requires_player_action_to_resolve=True,
        resolution_criteria_prompt="Pay, persuade or outwit the toll-keeper.",
        major_plot_point_summary="A toll-keeper claims the bridge.",
    )


@pytest.mark.asyncio
async def test_resolution_awards_items_and_adds_one_chronicle_entry(content, start_session, command):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="toll"))
    content.event_effects.append(standoff())
    assert await session.events.attempt_unexpected_event("event_toll") is True

    store = session.store
    assert store.active_event is not None
    assert "Hint: Pay, persuade or outwit the toll-keeper." in texts(store.log_entries)
    chronicle_before = len(store.chronicle)
    inventory_before = len(store.inventory)

    content.resolutions.append(
        EventResolution(
            resolved=True,
            resolution_narration="The toll-keeper laughs and waves you through.",
            items_awarded=[ItemSuggestion(name="Bridge Token", rarity="Uncommon")],
        )
    )
    # Any action is routed to the event while it waits for the player.
    command("examine", "bridge")
    entries = await session.submit("I tell a joke")

    assert store.active_event is None
    assert len(store.inventory) == inventory_before + 1
    assert store.inventory[-1].name == "Bridge Token"
    assert len(store.chronicle) == chronicle_before + 1
    assert store.chronicle[-1].summary.startswith('Event Resolved: "Standoff at the Bridge".')
    assert "You received: Bridge Token (Uncommon)." in texts(entries)
    assert content.count("check_event_resolution", "I tell a joke") == 1
    # Resolution forces a director pass in the same command epilogue.
    assert content.count("analyze_for_directive") == 1


@pytest.mark.asyncio
async def test_progressed_event_stays_active(content, start_session, command):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="toll"))
    content.event_effects.append(standoff())
    await session.events.attempt_unexpected_event("event_toll")

    content.resolutions.append(
        EventResolution(progressed=True, next_stage_narration="The toll-keeper hesitates.")
    )
    command("event_dialogue_input", dialogue_text="I only have stories")
    entries = await session.submit("I only have stories")

    event = session.store.active_event
    assert event is not None
    assert event.effects.narration == "The toll-keeper hesitates."
    assert 'Event "Standoff at the Bridge" has progressed!' in texts(entries)


@pytest.mark.asyncio
async def test_inventory_and_status_pass_through_active_event(content, start_session, command):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="toll"))
    content.event_effects.append(standoff())
    await session.events.attempt_unexpected_event("event_toll")

    command("inventory")
    entries = await session.submit("inventory")

    assert "Your inventory is empty." in texts(entries)
    assert content.count("check_event_resolution") == 0


@pytest.mark.asyncio
async def test_npcs_hidden_during_event_until_it_clears(content, start_session):
    session = await start_session()
    villager = NPC(name="Villager")
    session.store.set_location_npcs([villager])
    content.decisions.append(EventDecision(should_trigger=True, concept="toll"))
    content.event_effects.append(standoff())
    await session.events.attempt_unexpected_event("event_toll")

    assert [npc.name for npc in session.services.visible_npcs()] == ["Toll-keeper"]

    session.store.clear_active_event()
    assert {npc.name for npc in session.services.visible_npcs()} == {"Villager", "Toll-keeper"}


@pytest.mark.asyncio
async def test_attack_that_defeats_target_concludes(content, start_session, command):
    session = await start_session()
    brute = NPC(name="Brute", disposition="Hostile")
    session.store.set_location_npcs([brute])
    content.consequences.append(
        EventEffects(
            event_title="Clash with the Brute",
            narration="Your blow lands true.",
            npc_effects=[NpcEffect(npc_id_targeted=brute.id, health_change=-100, is_defeated=True)],
            requires_player_action_to_resolve=True,
        )
    )
    command("attack_npc", "Brute")

    entries = await session.submit("attack the brute")

    store = session.store
    assert store.active_event is None
    assert store.find_npc(brute.id).is_defeated is True
    assert "PLAYER ACTION EVENT: Clash with the Brute" in texts(entries)
    assert "Brute has been defeated!" in texts(entries)
    assert "The confrontation has reached a conclusion." in texts(entries)
    assert store.chronicle[-1].summary.startswith('Action Outcome: "Clash with the Brute".')
    assert store.character.current_energy == 98


@pytest.mark.asyncio
async def test_attack_that_leaves_target_standing_stays_active(content, start_session, command):
    session = await start_session()
    brute = NPC(name="Brute")
    session.store.set_location_npcs([brute])
    content.consequences.append(
        EventEffects(
            event_title="Brawl",
            narration="The brute shrugs off the hit.",
            npc_effects=[NpcEffect(npc_id_targeted=brute.id, health_change=-20, disposition_change="Furious")],
            requires_player_action_to_resolve=True,
        )
    )
    command("attack", "Brute")

    entries = await session.submit("hit the brute")

    store = session.store
    assert store.active_event is not None
    assert store.active_event.origin == "player_action"
    assert "The situation remains tense and requires further action." in texts(entries)
    assert "Brute takes 20 health (80/100HP)." in texts(entries)
    assert "Brute now seems Furious." in texts(entries)
