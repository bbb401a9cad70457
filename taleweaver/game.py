"""
Game session: wires the engine together and drives the game lifecycle.

Usage:
    session = GameSession(LLMContentService(), persistence=JsonPersistence(Config.SAVE_DIR))
    await session.start_new_game("a disgraced alchemist", "a rain-soaked harbor town")
    new_entries = await session.submit("search the area for items")
"""

from __future__ import annotations

from typing import List, Optional

from .content.base import ContentService, ContentServiceError
from .content.models import EntityKind
from .discovery import DiscoveryLedger
from .engine.commands import CommandProcessor
from .engine.context import EngineServices
from .engine.director import DirectorCadence, GameDirector
from .engine.effects import EffectApplier
from .engine.events import EventEngine
from .logging_utils import log_error, log_info, log_success
from .memory import MemoryStrategy, RecentMemory
from .persistence import GameSnapshot, InMemoryPersistence, PersistenceStrategy
from .scheduling import TurnScheduler
from .schemas import Character, Coordinates, GameLogEntry, LocationData
from .store import WorldStateStore


class GameNotStartedError(Exception):
    """Raised when a command is submitted before a game exists.

    Remediation tips:
    - Call ``start_new_game()`` or ``load(game_id)`` first
    """


class GameSession:
    """One player's game: store, engine components and persistence."""

    def __init__(
        self,
        content: ContentService,
        *,
        persistence: Optional[PersistenceStrategy] = None,
        memory: Optional[MemoryStrategy] = None,
        cadence: Optional[DirectorCadence] = None,
        echo_log: bool = False,
    ) -> None:
        self.store = WorldStateStore(echo_log=echo_log)
        self.content = content
        self.services = EngineServices(
            store=self.store,
            content=content,
            ledger=DiscoveryLedger(self.store, content),
            memory=memory or RecentMemory(),
            scheduler=TurnScheduler(),
        )
        self.director = GameDirector(self.services, cadence)
        self.effects = EffectApplier(self.services)
        self.events = EventEngine(self.services, self.effects, self.director)
        self.commands = CommandProcessor(self.services, self.events)
        self.persistence = persistence or InMemoryPersistence()
        self.turn = 0

    @property
    def scheduler(self) -> TurnScheduler:
        return self.services.scheduler

    async def start_new_game(
        self,
        character_concept: str,
        location_concept: str = "",
        *,
        setting_type: str = "Fictional",
        setting_context: Optional[str] = None,
        visual_style: str = "Pixel Art",
    ) -> Character:
        """Generate the character and starting location and open the story.

        Raises ContentServiceError if the character or location cannot be
        generated; there is no game to fall back to in that case.
        """
        async with self.scheduler.console.hold():
            await self.persistence.initialize()
            context = self.services.context()
            setting = f"{setting_type} setting" + (f" ({setting_context})" if setting_context else "")
            character = await self.content.generate_entity(
                EntityKind.CHARACTER,
                context,
                f"Character concept: {character_concept}. {setting}. Visual style: {visual_style}.",
            )
            location = await self.content.generate_entity(
                EntityKind.LOCATION,
                context,
                f"Starting location for {character_concept}: {location_concept or 'somewhere fitting'}. {setting}.",
            )
            if not isinstance(character, Character) or not isinstance(location, LocationData):
                raise ContentServiceError("start_new_game", TypeError("unexpected entity kinds returned"))

            character.image_handle = await self.services.illustrate(character.concept, character.visual_style)
            location.image_handle = await self.services.illustrate(location.visual_hint, character.visual_style)
            self.store.start_game(character, location, Coordinates())
            self.turn = 0
            self.store.remember_entity(
                character.id, character.name, "character", character.rarity, character.concept, "The player character"
            )
            self.store.remember_entity(
                self.store.location_key, location.name, "location", location.rarity, location.description, "Where it began"
            )
            self.store.log("system", f"Welcome, {character.name}! Your adventure begins in {location.name}.")
            self.store.log("narration", location.description, processed_text=location.processed_description)
            log_success("Game", f"Started game {self.store.game_id} as {character.name}")

            await self._open_story(character, location)
            await self.events.attempt_unexpected_event(
                f"game_start_{character.rarity.lower()}_{character.name.replace(' ', '_')}"
            )
            await self.director.maybe_run(force=True)
        await self.save()
        return self.store.character

    async def _open_story(self, character: Character, location: LocationData) -> None:
        try:
            opening = await self.content.generate_opening(character, location, self.services.context())
        except ContentServiceError as exc:
            log_error("Game", f"Opening scene failed: {exc}")
            self.store.log("error", f"The opening scene could not be set: {exc}")
            return
        if opening.narration:
            self.store.log("narration", opening.narration)
        self.services.ledger.add_leads(opening.leads, character.id, self.store.location_key)

    async def submit(self, text: str) -> List[GameLogEntry]:
        """Run one command turn and return the log entries it produced.

        The director cadence check runs after the console gate is released, so
        a slow analysis never rejects the next command. Its log entries are
        appended to the returned list.

        Raises GateBusyError if another command is still in flight.
        """
        if not self.store.has_game:
            raise GameNotStartedError("No game in progress; start or load one first.")
        start = len(self.store.log_entries)
        async with self.scheduler.console.hold():
            await self.commands.process(text)
            self.turn += 1
            await self.save()
            entries = self.store.log_entries[start:]

        director_start = len(self.store.log_entries)
        await self.director.maybe_run()
        return entries + self.store.log_entries[director_start:]

    async def save(self) -> GameSnapshot:
        snapshot = GameSnapshot(game_id=self.store.game_id, turn=self.turn, state=self.store.snapshot())
        await self.persistence.save_snapshot(snapshot)
        return snapshot

    async def load(self, game_id: str, turn: Optional[int] = None) -> None:
        snapshot = await self.persistence.load_snapshot(game_id, turn)
        if snapshot is None:
            raise GameNotStartedError(f"No saved game {game_id!r}" + (f" at turn {turn}" if turn is not None else ""))
        self.store.restore(snapshot.state)
        self.turn = snapshot.turn
        log_info("Game", f"Loaded game {game_id} at turn {snapshot.turn}")
