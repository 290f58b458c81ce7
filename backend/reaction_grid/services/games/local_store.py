"""Client-local leaderboard history.

The whole history lives in one JSON blob under a single key of a scoped
key-value store::

    {"topScores": [{"score": 1320, "time": 183.4, "date": 1760850000000}, ...],
     "bestTime": 183.4}

``bestTime`` is tracked on its own because the fastest entry may later be
pushed out of the top list by a higher-scoring, slower one.
"""

import json
import logging
import math
import os
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

STORAGE_KEY = 'emoji_reaction_grid_data'
DEFAULT_TOP_N = 10


class KeyValueStore:
    """Minimal scoped key-value interface used by the local leaderboard."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """One JSON document per scope, rewritten atomically on every ``set``."""

    def __init__(self, directory: str, scope: str = 'default'):
        self.path = os.path.join(directory, f'{scope}.json')

    def _read_all(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f'{self.path} does not hold a JSON object')
        return data

    def get(self, key, default=None):
        return self._read_all().get(key, default)

    def set(self, key, value):
        try:
            data = self._read_all()
        except ValueError:
            data = {}
        data[key] = value
        directory = os.path.dirname(self.path) or '.'
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


@dataclass(frozen=True)
class ScoreEntry:
    score: int
    reaction_time_ms: float
    recorded_at: int

    @classmethod
    def now(cls, score: int, reaction_time_ms: float) -> 'ScoreEntry':
        return cls(score=int(score), reaction_time_ms=reaction_time_ms, recorded_at=int(time.time() * 1000))

    def to_dict(self) -> dict:
        return {'score': self.score, 'time': self.reaction_time_ms, 'date': self.recorded_at}

    @classmethod
    def from_dict(cls, data: Any) -> 'ScoreEntry':
        if not isinstance(data, dict):
            raise ValueError('entry is not an object')
        score, t, date = data.get('score'), data.get('time'), data.get('date')
        if not _non_negative(score) or not _non_negative(t) or not _non_negative(date):
            raise ValueError(f'invalid entry {data!r}')
        return cls(score=int(score), reaction_time_ms=t, recorded_at=int(date))


@dataclass(frozen=True)
class LeaderboardSnapshot:
    top_entries: Tuple[ScoreEntry, ...] = ()
    best_time_ms: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'topScores': [e.to_dict() for e in self.top_entries],
            'bestTime': self.best_time_ms,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'LeaderboardSnapshot':
        if not isinstance(data, dict):
            raise ValueError('snapshot is not an object')
        raw_entries = data.get('topScores', [])
        if not isinstance(raw_entries, list):
            raise ValueError('topScores is not a list')
        best = data.get('bestTime')
        if best is not None and not _non_negative(best):
            raise ValueError(f'invalid bestTime {best!r}')
        entries = [ScoreEntry.from_dict(e) for e in raw_entries]
        entries.sort(key=lambda e: e.score, reverse=True)
        return cls(top_entries=tuple(entries), best_time_ms=best)


def _non_negative(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


class LocalLeaderboardStore:
    def __init__(self, kv: KeyValueStore, key: str = STORAGE_KEY, limit: int = DEFAULT_TOP_N):
        self.kv = kv
        self.key = key
        self.limit = limit

    def load(self) -> LeaderboardSnapshot:
        """Read the persisted snapshot; anything unreadable yields the empty default."""
        try:
            raw = self.kv.get(self.key)
            if raw is None:
                return LeaderboardSnapshot()
            if isinstance(raw, (str, bytes)):
                raw = json.loads(raw)
            return LeaderboardSnapshot.from_dict(raw)
        except (OSError, ValueError, TypeError) as exc:
            logger.warning(f"[local-store] discarding unreadable snapshot under {self.key!r}: {exc}")
            return LeaderboardSnapshot()

    def persist(self, snapshot: LeaderboardSnapshot) -> None:
        self.kv.set(self.key, snapshot.to_dict())

    def record(self, entry: ScoreEntry) -> LeaderboardSnapshot:
        current = self.load()
        entries = list(current.top_entries) + [entry]
        # Stable sort: equal scores keep recording order
        entries.sort(key=lambda e: e.score, reverse=True)
        best = entry.reaction_time_ms
        if current.best_time_ms is not None:
            best = min(current.best_time_ms, best)
        snapshot = LeaderboardSnapshot(top_entries=tuple(entries[:self.limit]), best_time_ms=best)
        try:
            self.persist(snapshot)
        except OSError as exc:
            logger.error(f"[local-store] failed to persist snapshot: {exc}")
        return snapshot
