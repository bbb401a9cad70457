"""Tests for the command pipeline: parsing, dispatch and the turn epilogue."""

import pytest

from taleweaver.content.models import EntityKind, NarrativeKind, NarrativeOutcome, ParsedCommand
from taleweaver.engine.actions import ActionKind, resolve_action
from taleweaver.game import GameNotStartedError, GameSession
from taleweaver.schemas import NPC, ItemSuggestion, LeadHint, NpcSuggestion


def texts(entries):
    return [entry.text for entry in entries]


def test_resolve_action_aliases():
    assert resolve_action("GO") is ActionKind.MOVE
    assert resolve_action(" search_area_for_items ") is ActionKind.DISCOVER_ITEMS
    assert resolve_action("request_item_from_npc") is ActionKind.REQUEST_ITEM
    assert resolve_action("dance") is ActionKind.UNKNOWN


@pytest.mark.asyncio
async def test_every_action_kind_has_a_handler(start_session):
    session = await start_session()

    assert set(session.commands.handlers) == set(ActionKind)


@pytest.mark.asyncio
async def test_submit_requires_a_game(content):
    session = GameSession(content)

    with pytest.raises(GameNotStartedError):
        await session.submit("look around")


@pytest.mark.asyncio
async def test_implausible_command_changes_nothing(content, start_session):
    session = await start_session()
    before = session.store.snapshot()
    content.intents.append(
        ParsedCommand(action="go", targets=["moon"], is_plausible=False, reason_if_not_plausible="You cannot fly.")
    )

    entries = await session.submit("fly to the moon")

    after = session.store.snapshot()
    assert texts(entries) == ["> fly to the moon", "You cannot fly."]
    assert entries[-1].type == "error"
    assert after.character == before.character
    assert after.coordinates == before.coordinates
    assert after.player_command_count == before.player_command_count + 1
    assert content.count("generate_entity") == 0


@pytest.mark.asyncio
async def test_unknown_action(start_session, command):
    session = await start_session()
    command("dance")

    entries = await session.submit("dance wildly")

    assert "Unknown action: dance" in texts(entries)


@pytest.mark.asyncio
async def test_parse_failure_still_runs_epilogue(content, start_session):
    session = await start_session()
    content.failures.add("parse_intent")

    entries = await session.submit("xyzzy")

    assert entries[-1].type == "error"
    assert entries[-1].text.startswith("Could not understand that command:")
    assert session.store.player_command_count == 1


@pytest.mark.asyncio
async def test_unexpected_handler_error_is_reported(start_session, command, monkeypatch):
    session = await start_session()

    async def broken(parsed, raw_text):
        raise RuntimeError("boom")

    monkeypatch.setitem(session.commands.handlers, ActionKind.STATUS, broken)
    command("status")

    entries = await session.submit("status")

    assert "Command processing error: boom" in texts(entries)
    assert session.store.player_command_count == 1


@pytest.mark.asyncio
async def test_narration_for_plausible_action_is_logged(content, start_session):
    session = await start_session()
    content.intents.append(ParsedCommand(action="status", narration_for_plausible_action="You pat yourself down."))

    entries = await session.submit("check myself")

    assert texts(entries)[1] == "You pat yourself down."
    assert texts(entries)[2].startswith("Overall Health: 100HP. Energy: 100/100EN. Limbs: Head (Healthy, 100HP)")


@pytest.mark.asyncio
async def test_discover_items_caches_results(content, start_session, command):
    session = await start_session()
    content.entity_batches.append([ItemSuggestion(name="Rusty Key", rarity="Uncommon")])
    command("search_area_for_items")
    first = await session.submit("search for items")

    command("search_area_for_items")
    second = await session.submit("search again")

    assert content.count("generate_entities", EntityKind.ITEM) == 1
    assert "You find: Rusty Key (Uncommon)." in texts(first)
    assert "You recall seeing: Rusty Key (Uncommon)." in texts(second)
    assert session.store.character.current_energy == 99


@pytest.mark.asyncio
async def test_empty_search_is_remembered(content, start_session, command):
    session = await start_session()
    command("discover_npcs")
    first = await session.submit("look for people")
    command("discover_npcs")
    second = await session.submit("look for people")

    assert session.store.location_npcs == []
    assert "You look around but see no one." in texts(first)
    assert "You recall that no one was around." in texts(second)
    assert content.count("generate_entities", EntityKind.NPC) == 1


@pytest.mark.asyncio
async def test_examine_registers_leads(content, start_session, command):
    session = await start_session()
    content.narratives.append(
        NarrativeOutcome(
            narration="Scratched into the bark: 'the ferryman knows'.",
            new_leads=[LeadHint(name="The Ferryman", type="npc", source_type="contextual_examination")],
        )
    )
    command("examine", "old oak")

    await session.submit("examine the old oak")

    [lead] = session.store.unresolved_leads("npc")
    assert lead.name == "The Ferryman"
    assert lead.source_entity_id == "0,0"
    assert content.count("generate_narrative_outcome", NarrativeKind.EXAMINATION) == 1


@pytest.mark.asyncio
async def test_talk_and_dialogue(content, start_session, command):
    session = await start_session()
    content.entity_batches.append([NpcSuggestion(name="Mara", rarity="Rare")])
    command("discover_npcs")
    await session.submit("look for people")

    command("talk", "Mara")
    await session.submit("talk to Mara")
    assert session.store.talking_to.name == "Mara"

    content.narratives.append(NarrativeOutcome(narration="", raw_text="Mind the river.", disposition_change="Friendly"))
    command("dialogue_input", dialogue_text="Any news?")
    entries = await session.submit("Any news?")

    assert 'Mara: "Mind the river."' in texts(entries)
    assert "Mara now seems Friendly." in texts(entries)

    command("end_conversation")
    await session.submit("bye")
    assert session.store.talking_to is None


@pytest.mark.asyncio
async def test_defeated_character_cannot_talk(content, start_session, command):
    session = await start_session()
    store = session.store
    guard = NPC(name="Old Guard")
    store.set_location_npcs([guard])
    store.apply_limb_changes(health_change=-100)
    energy_before = store.character.current_energy

    command("talk", "Old Guard", dialogue_text="Help me.")
    talk_entries = await session.submit("talk to the old guard")
    command("dialogue_input", dialogue_text="Please.")
    dialogue_entries = await session.submit("Please.")

    assert "You are too weak to talk." in texts(talk_entries)
    assert "You are too weak to speak." in texts(dialogue_entries)
    assert store.talking_to is None
    assert content.count("generate_narrative_outcome") == 0
    assert store.character.current_energy == energy_before
