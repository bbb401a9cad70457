"""Tests for truthful logging tags ([LLM] vs [•]) in console output.

These tests assert that:
- Deterministic engine work prints [•] and never [LLM]
- Content-service calls print [LLM]
- Failures print [!]
"""

from __future__ import annotations

import contextlib
import io

import pytest

from taleweaver.content.llm_service import LLMContentService
from taleweaver.content.models import ContextSnapshot, EventDecision, ParsedCommand
from taleweaver.logging_utils import Color, colored, log_deterministic, log_error, log_info


def test_colored_respects_no_color(monkeypatch):
    monkeypatch.setenv("TALEWEAVER_NO_COLOR", "1")
    assert colored("plain", Color.RED) == "plain"

    monkeypatch.delenv("TALEWEAVER_NO_COLOR")
    assert colored("tinted", Color.RED, bold=True) == f"{Color.BOLD.value}{Color.RED.value}tinted{Color.RESET.value}"


def test_deterministic_tag():
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        log_deterministic("Store", "Recomputed health")

    assert "[•] [Store] Recomputed health" in buf.getvalue()


def test_log_level_silences_lower_levels(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        log_deterministic("Store", "Recomputed health")
        log_info("Game", "Loaded game")
        log_error("Events", "Event generation failed")

    output = buf.getvalue()
    assert "[•]" not in output
    assert "[i]" not in output
    assert "[!] [Events] Event generation failed" in output


def test_unknown_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        log_info("Game", "Loaded game")

    assert "[i] [Game] Loaded game" in buf.getvalue()


@pytest.mark.asyncio
async def test_command_dispatch_is_deterministic(start_session, command):
    session = await start_session()
    command("inventory")

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await session.submit("inventory")
    out = buf.getvalue()

    assert "[•] [Commands] Dispatching inventory" in out
    assert "[LLM]" not in out


@pytest.mark.asyncio
async def test_content_calls_are_tagged_llm(monkeypatch):
    async def fake_call_llm_with_retries(**kwargs):
        return ParsedCommand(action="status")

    monkeypatch.setattr("taleweaver.content.llm_service.call_llm_with_retries", fake_call_llm_with_retries)
    service = LLMContentService(llm_provider="openai", llm_model="gpt-5-nano")

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await service.parse_intent("status", ContextSnapshot())

    assert "[LLM] [Content] parse_intent via openai/gpt-5-nano" in buf.getvalue()


@pytest.mark.asyncio
async def test_event_failures_are_tagged_error(content, start_session):
    session = await start_session()
    content.decisions.append(EventDecision(should_trigger=True, concept="storm"))
    content.failures.add("generate_event_effects")

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await session.events.attempt_unexpected_event("event_storm")

    assert "[!] [Events] Event generation failed for 'event_storm'" in buf.getvalue()


@pytest.mark.asyncio
async def test_game_log_echo(content, start_session, command):
    session = await start_session(echo_log=True)
    command("inventory")

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        await session.submit("inventory")

    assert "[system] Your inventory is empty." in buf.getvalue()
