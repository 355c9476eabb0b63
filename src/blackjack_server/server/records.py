import json
import os
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..core.enums import RoundResult
from ..logging_utils import get_logger
from .rwlock import ReadWriteLock

log = get_logger("server.records")

DEFAULT_MAX_RECORDS = 100
DEFAULT_TOP_RECORDS = 10


def _now_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class PlayerRecord:
    """Cumulative statistics for one player name."""
    name: str
    wins: int = 0
    losses: int = 0
    blackjacks: int = 0
    last_played: int = 0  # epoch milliseconds

    @property
    def win_rate(self) -> float:
        """Share of decided rounds won; pushes are not counted."""
        decided = self.wins + self.losses
        return self.wins / decided if decided else 0.0

    def apply(self, result: RoundResult, timestamp: int) -> None:
        """Update counters with one finished round."""
        if result == RoundResult.WIN:
            self.wins += 1
        elif result == RoundResult.LOSE:
            self.losses += 1
        elif result == RoundResult.BLACKJACK:
            self.wins += 1
            self.blackjacks += 1
        self.last_played = timestamp

    def copy(self) -> "PlayerRecord":
        return PlayerRecord(self.name, self.wins, self.losses, self.blackjacks, self.last_played)

    def to_json(self, include_rate: bool = False) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "wins": self.wins,
            "losses": self.losses,
            "blackjacks": self.blackjacks,
            "lastPlayed": self.last_played,
        }
        if include_rate:
            data["winRate"] = round(self.win_rate, 4)
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PlayerRecord":
        """Build a record from its persisted form; raises ValueError if malformed."""
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise ValueError(f"Invalid record entry: {data!r}")
        try:
            return cls(
                name=data["name"],
                wins=int(data.get("wins", 0)),
                losses=int(data.get("losses", 0)),
                blackjacks=int(data.get("blackjacks", 0)),
                last_played=int(data.get("lastPlayed", 0)),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid record entry: {data!r}") from e


def _leaderboard_key(record: PlayerRecord):
    return (-record.wins, record.losses)


class RecordsStore:
    """
    Player statistics shared by every connection.

    Reads share a read lock; each write holds the write lock while it
    updates the map and rewrites the whole file.
    """

    def __init__(self, path: Optional[str] = "records.json",
                 max_records: int = DEFAULT_MAX_RECORDS,
                 clock: Callable[[], int] = _now_millis):
        self.path = path
        self.max_records = max_records
        self.clock = clock
        self._records: Dict[str, PlayerRecord] = {}
        self._lock = ReadWriteLock()

    def load(self) -> int:
        """
        Load records from disk. A missing or corrupt file leaves the store
        empty instead of failing. Returns the number of players loaded.
        """
        with self._lock.write_locked():
            self._records.clear()
            if not self.path or not os.path.exists(self.path):
                log.info(f"No records file at {self.path}, starting empty")
                return 0
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if not isinstance(raw, list):
                    raise ValueError("Records file must hold a JSON array")
                loaded = [PlayerRecord.from_json(entry) for entry in raw]
            except (OSError, ValueError) as e:
                log.warning(f"Failed to load records from {self.path}: {e}. Starting empty")
                return 0
            for record in loaded:
                self._records[record.name] = record
            log.info(f"Loaded records for {len(self._records)} players")
            return len(self._records)

    def record_result(self, name: str, result: RoundResult) -> PlayerRecord:
        """Apply one round result to `name` and persist the store."""
        with self._lock.write_locked():
            record = self._records.get(name)
            if record is None:
                record = PlayerRecord(name=name)
                self._records[name] = record
            record.apply(result, self.clock())
            self._save()
            log.info(
                f"Record updated: {name} ({record.wins}W-{record.losses}L, "
                f"{record.blackjacks} BJ) after {result.name}"
            )
            return record.copy()

    def top_records(self, limit: int = DEFAULT_TOP_RECORDS) -> List[PlayerRecord]:
        """Leaderboard: most wins first, fewer losses breaking ties."""
        with self._lock.read_locked():
            ranked = sorted(self._records.values(), key=_leaderboard_key)
            return [record.copy() for record in ranked[:max(limit, 0)]]

    def player_stats(self, name: str) -> Optional[PlayerRecord]:
        """Statistics for one player, or None if they never finished a round."""
        with self._lock.read_locked():
            record = self._records.get(name)
            return record.copy() if record else None

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._records)

    def _save(self) -> None:
        """Rewrite the whole file. Caller holds the write lock."""
        if not self.path:
            return
        ranked = sorted(self._records.values(), key=lambda r: -r.wins)[:self.max_records]
        payload = [record.to_json() for record in ranked]
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".records-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            log.warning(f"Failed to save records to {self.path}: {e}")
            return
        log.debug(f"Records saved: {len(payload)} players")
