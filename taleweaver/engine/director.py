"""
Game director: periodic meta-analysis that biases future generation.

The director looks at recent history, decides what kind of game the player is
having (a focus label) and stores a directive whose per-target prompt
enhancements are read by later content calls. Directive production is
best-effort: failures are logged and the previous directive stays in place.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from taleweaver.config import Config
from taleweaver.content.base import ContentServiceError
from taleweaver.logging_utils import log_deterministic, log_error, log_success
from taleweaver.schemas import DirectorDirective

from .context import EngineServices

HISTORY_LOG_ENTRIES = 30


@dataclass(frozen=True)
class DirectorCadence:
    """Run when both enough commands and enough wall-clock time have passed."""

    command_interval: int = field(default_factory=lambda: Config.DIRECTOR_COMMAND_INTERVAL)
    min_seconds: float = field(default_factory=lambda: Config.DIRECTOR_MIN_SECONDS)

    def is_due(self, *, commands_since: int, seconds_since: float) -> bool:
        return commands_since >= self.command_interval and seconds_since >= self.min_seconds


class GameDirector:
    """Owns the analyzing flag and the cadence bookkeeping."""

    def __init__(
        self,
        services: EngineServices,
        cadence: Optional[DirectorCadence] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.services = services
        self.cadence = cadence or DirectorCadence()
        self.clock = clock
        self._analyzing = False
        self._force_next = False
        self._last_run_at: Optional[float] = None
        self._last_run_command_count = 0

    @property
    def analyzing(self) -> bool:
        return self._analyzing

    def request_analysis(self) -> None:
        """Force the next cadence check to run (e.g. after an event resolves)."""
        self._force_next = True

    def should_run(self, force: bool = False) -> bool:
        if self._analyzing:
            return False
        if force or self._force_next or self._last_run_at is None:
            return True
        return self.cadence.is_due(
            commands_since=self.services.store.player_command_count - self._last_run_command_count,
            seconds_since=self.clock() - self._last_run_at,
        )

    async def maybe_run(self, force: bool = False) -> Optional[DirectorDirective]:
        """Cadence check; runs an analysis when due and returns the new directive."""
        if not self.should_run(force):
            return None
        return await self._analyze()

    async def _analyze(self) -> Optional[DirectorDirective]:
        store = self.services.store
        self._analyzing = True
        self._force_next = False
        command_count = store.player_command_count
        store.log("system", "The winds of fate shift... (Game Director is contemplating...)")
        log_deterministic("Director", f"Analyzing after {command_count} commands")
        try:
            analysis = await self.services.content.analyze_for_directive(
                self._history(), self.services.context(), store.directive
            )
        except ContentServiceError as exc:
            log_error("Director", f"Analysis failed: {exc}")
            store.log("error", "Game Director encountered an issue during contemplation.")
            return None
        finally:
            self._analyzing = False
            self._last_run_at = self.clock()
            self._last_run_command_count = command_count

        if analysis is None:
            store.log("system", "Game Director's contemplation yielded no new directives at this moment.")
            return None

        directive = DirectorDirective(
            **analysis.model_dump(),
            analyzed_command_count=command_count,
        )
        store.set_directive(directive)
        store.log("system", f"Game Director's Focus: {directive.current_game_focus.value}")
        log_success("Director", f"Focus {directive.current_game_focus.value}: {directive.reasoning}")
        return directive

    def _history(self) -> List[str]:
        store = self.services.store
        lines = [f"[{entry.type}] {entry.text}" for entry in store.recent_log(HISTORY_LOG_ENTRIES)]
        lines.extend(f"[plot] {point.summary}" for point in store.chronicle[-10:])
        return lines
