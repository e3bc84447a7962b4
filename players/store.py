"""JSON-file storage for player profiles, wallets, progression and results.

Reads never fail on bad data: a missing, unreadable or invalid record falls
back to a freshly constructed default and a warning is logged.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from pathlib import Path
from typing import List, Optional, Tuple, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from wager.economy import PlayerWallet, create_wallet
from wager.progression import PlayerProgression, create_progression

from .models import (
    MAX_STORED_RESULTS,
    GameResult,
    PlayerProfile,
    PlayerStats,
    ProgressionRecord,
    WalletRecord,
)
from .stats import empty_stats, update_stats

LOGGER = logging.getLogger("player_store")

PLAYERS_FILE = "players.json"
ACTIVE_PLAYER_FILE = "active_player.json"

_PROFILES = TypeAdapter(List[PlayerProfile])
_RESULTS = TypeAdapter(List[GameResult])

ModelT = TypeVar("ModelT", bound=BaseModel)


class StoreError(RuntimeError):
    """Raised when a record cannot be written."""


def _now_ms() -> int:
    return int(time.time() * 1000)


class PlayerStore:
    """Keyed JSON storage rooted at a directory, one subdirectory per player."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    # Profiles ----------------------------------------------------------

    def load_players(self) -> List[PlayerProfile]:
        raw = self._read(self.root / PLAYERS_FILE)
        if raw is None:
            return []
        try:
            return _PROFILES.validate_json(raw)
        except ValidationError as exc:
            LOGGER.warning("Discarding corrupted player list: %s", exc)
            return []

    def save_players(self, players: List[PlayerProfile]) -> None:
        self._write(self.root / PLAYERS_FILE, _PROFILES.dump_json(players, indent=2).decode())

    def create_player(self, name: str) -> PlayerProfile:
        players = self.load_players()
        now = _now_ms()
        player = PlayerProfile(id=uuid.uuid4().hex, name=name, created_at_ms=now, last_active_at_ms=now)
        players.append(player)
        self.save_players(players)
        if self.load_active_player_id() is None:
            self.set_active_player_id(player.id)
        LOGGER.info("Created player %s (%s)", player.id, name)
        return player

    def rename_player(self, player_id: str, name: str) -> None:
        players = self.load_players()
        for player in players:
            if player.id == player_id:
                player.name = name
                self.save_players(players)
                return

    def delete_player(self, player_id: str) -> None:
        players = [player for player in self.load_players() if player.id != player_id]
        self.save_players(players)
        if self.load_active_player_id() == player_id:
            self.set_active_player_id(players[0].id if players else None)

    def load_active_player_id(self) -> Optional[str]:
        raw = self._read(self.root / ACTIVE_PLAYER_FILE)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError as exc:
            LOGGER.warning("Discarding corrupted active player id: %s", exc)
            return None
        return value if isinstance(value, str) else None

    def set_active_player_id(self, player_id: Optional[str]) -> None:
        path = self.root / ACTIVE_PLAYER_FILE
        if player_id is None:
            path.unlink(missing_ok=True)
            return
        self._write(path, json.dumps(player_id))

    def ensure_default_player(self) -> Tuple[List[PlayerProfile], str]:
        players = self.load_players()
        active_id = self.load_active_player_id()
        if not players:
            guest = self.create_player("Guest")
            return [guest], guest.id
        if active_id is None or all(player.id != active_id for player in players):
            active_id = players[0].id
            self.set_active_player_id(active_id)
        return players, active_id

    # Wallet and progression --------------------------------------------

    def load_wallet(self, player_id: str) -> PlayerWallet:
        record = self._load_model(self._player_path(player_id, "wallet.json"), WalletRecord)
        return record.to_wallet() if record else create_wallet()

    def save_wallet(self, player_id: str, wallet: PlayerWallet) -> None:
        self._save_model(self._player_path(player_id, "wallet.json"), WalletRecord.from_wallet(wallet))

    def load_progression(self, player_id: str) -> PlayerProgression:
        record = self._load_model(self._player_path(player_id, "progression.json"), ProgressionRecord)
        return record.to_progression() if record else create_progression()

    def save_progression(self, player_id: str, prog: PlayerProgression) -> None:
        self._save_model(self._player_path(player_id, "progression.json"), ProgressionRecord.from_progression(prog))

    # Results and stats -------------------------------------------------

    def load_stats(self, player_id: str) -> PlayerStats:
        stats = self._load_model(self._player_path(player_id, "stats.json"), PlayerStats)
        return stats or empty_stats(player_id)

    def recent_results(self, player_id: str, limit: int = 20) -> List[GameResult]:
        """Latest results first."""
        results = self._load_results(player_id)
        return list(reversed(results[-limit:])) if limit > 0 else []

    def record_game_result(self, result: GameResult) -> PlayerStats:
        results = self._load_results(result.player_id)
        results.append(result)
        results = results[-MAX_STORED_RESULTS:]
        self._write(
            self._player_path(result.player_id, "results.json"),
            _RESULTS.dump_json(results, indent=2).decode(),
        )
        stats = update_stats(self.load_stats(result.player_id), result)
        self._save_model(self._player_path(result.player_id, "stats.json"), stats)
        return stats

    # Helpers -----------------------------------------------------------

    def _player_path(self, player_id: str, filename: str) -> Path:
        if not player_id or "/" in player_id or "\\" in player_id or player_id.startswith("."):
            raise ValueError(f"Invalid player id: {player_id!r}")
        return self.root / player_id / filename

    def _load_results(self, player_id: str) -> List[GameResult]:
        raw = self._read(self._player_path(player_id, "results.json"))
        if raw is None:
            return []
        try:
            return _RESULTS.validate_json(raw)
        except ValidationError as exc:
            LOGGER.warning("Discarding corrupted results for %s: %s", player_id, exc)
            return []

    def _load_model(self, path: Path, model: type[ModelT]) -> Optional[ModelT]:
        raw = self._read(path)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            LOGGER.warning("Discarding corrupted %s at %s: %s", model.__name__, path, exc)
            return None

    def _save_model(self, path: Path, record: BaseModel) -> None:
        self._write(path, record.model_dump_json(indent=2))

    def _read(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Could not read %s: %s", path, exc)
            return None

    def _write(self, path: Path, payload: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Could not write {path}: {exc}") from exc
