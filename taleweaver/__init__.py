"""
Taleweaver - orchestration engine for generated text adventures.

Characters, locations, items, NPCs and events are generated on demand by a
content service; the engine keeps the partially generated world consistent,
serializes turns and steers future generation through a periodic director.
"""

__version__ = "0.1.0"

from .game import GameSession, GameNotStartedError
from .store import WorldStateStore, StoreError
from .discovery import DiscoveryLedger, lead_id_for
from .memory import MemoryStrategy, RecentMemory
from .persistence import (
    GameSnapshot,
    PersistenceStrategy,
    InMemoryPersistence,
    JsonPersistence,
)
from .scheduling import GateBusyError, TurnGate, TurnScheduler
from .content import (
    ContentService,
    ContentServiceError,
    ContextSnapshot,
    EntityKind,
    NarrativeKind,
    ParsedCommand,
)
from .engine.actions import ActionKind
from .engine.director import DirectorCadence, GameDirector
from .engine.events import EventEngine

from .schemas import (
    GameState,
    Character,
    Item,
    NPC,
    LocationData,
    Coordinates,
    PotentialDiscovery,
    MajorPlotPoint,
    EventEffects,
    ActiveEvent,
    DirectorDirective,
    GameLogEntry,
)

from .config import Config

__all__ = [
    "__version__",
    "GameSession",
    "GameNotStartedError",
    "WorldStateStore",
    "StoreError",
    "DiscoveryLedger",
    "lead_id_for",
    "MemoryStrategy",
    "RecentMemory",
    "GameSnapshot",
    "PersistenceStrategy",
    "InMemoryPersistence",
    "JsonPersistence",
    "GateBusyError",
    "TurnGate",
    "TurnScheduler",
    "ContentService",
    "ContentServiceError",
    "ContextSnapshot",
    "EntityKind",
    "NarrativeKind",
    "ParsedCommand",
    "ActionKind",
    "DirectorCadence",
    "GameDirector",
    "EventEngine",
    "GameState",
    "Character",
    "Item",
    "NPC",
    "LocationData",
    "Coordinates",
    "PotentialDiscovery",
    "MajorPlotPoint",
    "EventEffects",
    "ActiveEvent",
    "DirectorDirective",
    "GameLogEntry",
    "Config",
]
