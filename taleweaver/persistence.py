"""
PersistenceStrategy interface for saved games.

Persistence is OPTIONAL - a game can run entirely in memory. A saved game is a
sequence of snapshots, one per completed turn, each holding the complete
``GameState`` owned by the world state store.

Two included implementations:
1. InMemoryPersistence - Dict-based storage, data lost on exit (testing)
2. JsonPersistence - File-based storage, human-readable JSON

Usage pattern:
    persistence = JsonPersistence(Config.SAVE_DIR)
    await persistence.initialize()
    await persistence.save_snapshot(GameSnapshot(game_id=..., turn=3, state=store.snapshot()))
    latest = await persistence.load_snapshot(game_id)
    await persistence.close()
"""

import asyncio
import json
import shutil
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from taleweaver.schemas import GameState, utcnow


class GameSnapshot(BaseModel):
    """Complete game state after a given turn."""

    game_id: str
    turn: int = Field(..., ge=0)
    saved_at: datetime = Field(default_factory=utcnow)
    state: GameState


class PersistenceStrategy(ABC):
    """Abstract base class for saved-game storage.

    All methods are async so file or database backends never block a turn.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create directories, open connections)."""

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def save_snapshot(self, snapshot: GameSnapshot) -> None:
        """Store a snapshot, replacing any existing one for the same turn."""

    @abstractmethod
    async def load_snapshot(self, game_id: str, turn: Optional[int] = None) -> Optional[GameSnapshot]:
        """Return the snapshot for ``turn`` (latest when None), or None if absent."""

    @abstractmethod
    async def latest_turn(self, game_id: str) -> Optional[int]:
        ...

    @abstractmethod
    async def delete_game(self, game_id: str) -> None:
        ...


class InMemoryPersistence(PersistenceStrategy):
    """In-memory persistence using Python dicts (no files).

    Snapshots are stored as deep copies so later store mutations never leak
    into saved turns.
    """

    def __init__(self) -> None:
        self.snapshots: Dict[str, Dict[int, GameSnapshot]] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        # Data is kept so callers can still read saved turns after close.
        pass

    async def save_snapshot(self, snapshot: GameSnapshot) -> None:
        self.snapshots.setdefault(snapshot.game_id, {})[snapshot.turn] = snapshot.model_copy(deep=True)

    async def load_snapshot(self, game_id: str, turn: Optional[int] = None) -> Optional[GameSnapshot]:
        turns = self.snapshots.get(game_id)
        if not turns:
            return None
        if turn is None:
            turn = max(turns)
        snapshot = turns.get(turn)
        return snapshot.model_copy(deep=True) if snapshot else None

    async def latest_turn(self, game_id: str) -> Optional[int]:
        turns = self.snapshots.get(game_id)
        return max(turns) if turns else None

    async def delete_game(self, game_id: str) -> None:
        self.snapshots.pop(game_id, None)


class JsonPersistence(PersistenceStrategy):
    """File-based persistence using JSON for human-readable storage.

    Directory structure:
    ```
    {base_path}/
      {game_id}/
        turns/
          00000.json              # GameSnapshot after the opening
          00001.json              # GameSnapshot after the first command
          ...
    ```

    Turn numbers are zero-padded to 5 digits for lexicographic sorting. All file
    I/O runs in a worker thread (asyncio.to_thread).
    """

    def __init__(self, base_path: Path | str = "saved_games"):
        self.base_path = Path(base_path)

    async def initialize(self) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)

    async def close(self) -> None:
        return None

    async def save_snapshot(self, snapshot: GameSnapshot) -> None:
        path = self._turns_dir(snapshot.game_id) / f"{snapshot.turn:05d}.json"
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        payload = snapshot.model_dump(mode="json")
        await asyncio.to_thread(path.write_text, json.dumps(payload, indent=2), "utf-8")

    async def load_snapshot(self, game_id: str, turn: Optional[int] = None) -> Optional[GameSnapshot]:
        if turn is None:
            turn = await self.latest_turn(game_id)
            if turn is None:
                return None
        path = self._turns_dir(game_id) / f"{turn:05d}.json"
        if not path.exists():
            return None
        text = await asyncio.to_thread(path.read_text, "utf-8")
        return GameSnapshot.model_validate(json.loads(text))

    async def latest_turn(self, game_id: str) -> Optional[int]:
        turns = await asyncio.to_thread(self._list_turns, game_id)
        return max(turns) if turns else None

    async def delete_game(self, game_id: str) -> None:
        game_dir = self.base_path / game_id
        if game_dir.exists():
            await asyncio.to_thread(shutil.rmtree, game_dir)

    def _turns_dir(self, game_id: str) -> Path:
        return self.base_path / game_id / "turns"

    def _list_turns(self, game_id: str) -> List[int]:
        directory = self._turns_dir(game_id)
        if not directory.exists():
            return []
        return [int(path.stem) for path in directory.glob("*.json") if path.stem.isdigit()]
