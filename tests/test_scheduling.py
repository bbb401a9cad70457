"""Tests for the non-queuing turn gates."""

import asyncio

import pytest

from taleweaver.scheduling import GateBusyError, TurnGate, TurnScheduler


async def wait_until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


@pytest.mark.asyncio
async def test_busy_gate_raises_instead_of_queuing():
    gate = TurnGate("console")

    async with gate.hold():
        assert gate.busy is True
        with pytest.raises(GateBusyError) as excinfo:
            async with gate.hold():
                pass
        assert excinfo.value.gate == "console"

    assert gate.busy is False


@pytest.mark.asyncio
async def test_gate_is_released_after_errors():
    gate = TurnGate("events")

    with pytest.raises(ValueError):
        async with gate.hold():
            raise ValueError("generation failed")

    async with gate.hold():
        assert gate.busy is True


@pytest.mark.asyncio
async def test_console_and_event_gates_are_independent():
    scheduler = TurnScheduler()

    async with scheduler.console.hold():
        async with scheduler.events.hold():
            assert scheduler.console.busy and scheduler.events.busy


@pytest.mark.asyncio
async def test_second_command_is_rejected_while_first_is_in_flight(content, start_session, command, gate_blocker):
    session = await start_session()
    release = gate_blocker()
    command("status")

    first = asyncio.create_task(session.submit("status"))
    await wait_until(lambda: session.scheduler.console.busy)

    with pytest.raises(GateBusyError):
        await session.submit("inventory")

    release.set()
    entries = await first
    assert entries[0].text == "> status"
    assert session.store.player_command_count == 1
    assert content.count("parse_intent") == 1
    assert session.scheduler.console.busy is False
