"""Tests for item handling: pickup, use, equipment, crafting and trades."""

import pytest

from taleweaver.content.models import NarrativeKind, NarrativeOutcome
from taleweaver.engine.handlers.items import CRAFT_ENERGY_COST, crafting_experience
from taleweaver.schemas import NPC, Item, ItemSuggestion


def texts(entries):
    return [entry.text for entry in entries]


def test_crafting_experience_by_rarity():
    assert crafting_experience("Rare", recipe=False) == 20
    assert crafting_experience("Rare", recipe=True) == 10
    assert crafting_experience("Mythic", recipe=False) == 5


@pytest.mark.asyncio
async def test_pickup_moves_item_and_narrates(content, start_session, command):
    session = await start_session()
    lamp = Item(name="Brass Lamp", rarity="Uncommon")
    session.store.set_location_items([lamp])
    command("pickup", "lamp")

    entries = await session.submit("take the lamp")

    store = session.store
    assert [item.id for item in store.inventory] == [lamp.id]
    assert store.location_items == []
    assert "You picked up: Brass Lamp (Uncommon)." in texts(entries)
    assert content.count("generate_narrative_outcome", NarrativeKind.PICKUP) == 1
    assert store.character.current_energy == 100


@pytest.mark.asyncio
async def test_pickup_missing_item(start_session, command):
    session = await start_session()
    command("pickup", "crown")

    entries = await session.submit("take the crown")

    assert 'There is no "crown" here to pick up.' in texts(entries)


@pytest.mark.asyncio
async def test_use_consumes_item_and_heals_limb(content, start_session, command):
    session = await start_session()
    session.store.apply_limb_changes(health_change=-50)
    salve = Item(name="Healing Salve")
    session.store.add_to_inventory([salve])
    content.narratives.append(
        NarrativeOutcome(narration="The salve soothes your arm.", item_consumed=True, health_change=30, limb_target="left arm")
    )
    command("use", "salve", is_limb_target=True, limb_name="Left Arm")

    entries = await session.submit("rub the salve on my left arm")

    character = session.store.character
    assert session.store.inventory == []
    assert character.limb("Left Arm").health == 80
    assert character.limb("Right Arm").health == 50
    assert character.overall_health == 55
    assert "Healing Salve was used up." in texts(entries)
    assert character.current_energy == 99


@pytest.mark.asyncio
async def test_equip_and_unequip(start_session, command):
    session = await start_session()
    shield = Item(name="Round Shield")
    session.store.add_to_inventory([shield])

    command("equip", "shield", limb_name="Left Arm")
    await session.submit("equip the shield")
    assert session.store.inventory == []
    assert [item.name for item in session.store.character.limb("Left Arm").equipped_items] == ["Round Shield"]

    command("unequip", "shield")
    entries = await session.submit("unequip the shield")
    assert "You unequip Round Shield." in texts(entries)
    assert [item.name for item in session.store.inventory] == ["Round Shield"]


@pytest.mark.asyncio
async def test_crafting_consumes_slots(content, start_session, command):
    session = await start_session()
    stick, cloth = Item(name="Stick"), Item(name="Oily Cloth")
    session.store.add_to_inventory([stick, cloth])
    command("add_to_crafting_slot", "stick")
    await session.submit("put the stick in the crafting slot")
    command("add_to_crafting_slot", "cloth", slot_index=3)
    await session.submit("put the cloth in slot 3")

    assert [slot.name if slot else None for slot in session.store.crafting_slots] == ["Stick", None, "Oily Cloth"]

    content.narratives.append(
        NarrativeOutcome(narration="You bind the cloth to the stick.", crafted_item=ItemSuggestion(name="Torch", rarity="Uncommon"))
    )
    command("craft", "torch")
    entries = await session.submit("craft a torch")

    store = session.store
    assert store.crafting_slots == [None, None, None]
    assert [item.name for item in store.inventory] == ["Torch"]
    assert store.item_owners(stick.id) == []
    assert "You crafted: Torch (Uncommon)." in texts(entries)
    assert store.character.skill("Crafting").experience == crafting_experience("Uncommon", recipe=False)
    assert store.character.current_energy == 100 - CRAFT_ENERGY_COST


@pytest.mark.asyncio
async def test_failed_craft_keeps_ingredients(content, start_session, command):
    session = await start_session()
    pebble = Item(name="Pebble")
    session.store.add_to_inventory([pebble])
    session.store.place_in_crafting_slot(pebble.id, 0)
    content.narratives.append(NarrativeOutcome(narration="Nothing useful comes of it."))
    command("craft")

    entries = await session.submit("craft something")

    assert session.store.crafting_slots[0].id == pebble.id
    assert "The crafting attempt failed. The materials remain in the slots." in texts(entries)


@pytest.mark.asyncio
async def test_remove_from_crafting_slot(start_session, command):
    session = await start_session()
    gear = Item(name="Gear")
    session.store.add_to_inventory([gear])
    session.store.place_in_crafting_slot(gear.id, 2)
    command("remove_from_crafting_slot", slot_index=3)

    entries = await session.submit("take the gear out of slot 3")

    assert "Gear returned to your inventory." in texts(entries)
    assert [item.id for item in session.store.inventory] == [gear.id]


@pytest.mark.asyncio
async def test_gift_accepted_moves_item_to_npc(content, start_session, command):
    session = await start_session()
    hermit = NPC(name="Hermit")
    session.store.set_location_npcs([hermit])
    bread = Item(name="Bread")
    session.store.add_to_inventory([bread])
    content.narratives.append(NarrativeOutcome(narration="The hermit smiles.", accepted=True))
    command("give_item", item_to_give_name="bread", target_npc_name_for_interaction="Hermit")

    entries = await session.submit("give the bread to the hermit")

    store = session.store
    assert store.inventory == []
    assert [item.id for item in store.find_npc(hermit.id).inventory] == [bread.id]
    assert "Hermit accepted Bread." in texts(entries)
    assert store.character.skill("Persuasion").experience == 10


@pytest.mark.asyncio
async def test_request_takes_item_the_npc_holds(content, start_session, command):
    session = await start_session()
    map_item = Item(name="Faded Map", rarity="Rare")
    merchant = NPC(name="Merchant", inventory=[map_item])
    session.store.set_location_npcs([merchant])
    content.narratives.append(NarrativeOutcome(narration="The merchant shrugs and hands it over.", accepted=True))
    command("request_item_from_npc", item_to_request_name="map", target_npc_name_for_request="Merchant")

    entries = await session.submit("ask the merchant for the map")

    store = session.store
    assert [item.id for item in store.inventory] == [map_item.id]
    assert store.find_npc(merchant.id).inventory == []
    assert "Merchant gave you Faded Map (Rare)." in texts(entries)


@pytest.mark.asyncio
async def test_refused_request_changes_no_inventory(content, start_session, command):
    session = await start_session()
    merchant = NPC(name="Merchant")
    session.store.set_location_npcs([merchant])
    content.narratives.append(NarrativeOutcome(narration="Not a chance.", accepted=False))
    command("request_item_from_npc", item_to_request_name="gold", target_npc_name_for_request="Merchant")

    entries = await session.submit("ask for gold")

    assert session.store.inventory == []
    assert "Merchant did not give you gold." in texts(entries)


@pytest.mark.asyncio
async def test_defeated_character_cannot_trade(content, start_session, command):
    session = await start_session()
    store = session.store
    coin = Item(name="Coin")
    merchant = NPC(name="Merchant", inventory=[Item(name="Faded Map")])
    store.set_location_npcs([merchant])
    store.add_to_inventory([coin])
    store.apply_limb_changes(health_change=-100)
    energy_before = store.character.current_energy
    assert store.character.is_defeated

    command("give_item", item_to_give_name="coin", target_npc_name_for_interaction="Merchant")
    gift_entries = await session.submit("give the coin to the merchant")
    command("request_item_from_npc", item_to_request_name="map", target_npc_name_for_request="Merchant")
    request_entries = await session.submit("ask the merchant for the map")

    assert "You are too weak to give anything away." in texts(gift_entries)
    assert "You are too weak to ask for anything." in texts(request_entries)
    assert content.count("generate_narrative_outcome") == 0
    assert store.character.current_energy == energy_before
    assert [item.id for item in store.inventory] == [coin.id]
    assert [item.name for item in store.find_npc(merchant.id).inventory] == ["Faded Map"]
