"""Client-side game domain: scoring, round timing and local history.

This package holds the pure(ish) game logic that a mini-app client drives;
rendering and identity stay outside. Server code lives in
``reaction_grid.services.leaderboard``.
"""

from .grid import DECOY_SYMBOLS, TARGET_SYMBOL, Round, RoundOutcome, RoundState, generate_grid
from .local_store import (
    JsonFileKeyValueStore,
    KeyValueStore,
    LeaderboardSnapshot,
    LocalLeaderboardStore,
    MemoryKeyValueStore,
    ScoreEntry,
)
from .scheduler import RoundScheduler, create_session
from .scoring import score_round
from .sync import SyncClient

__all__ = [
    'DECOY_SYMBOLS', 'TARGET_SYMBOL', 'Round', 'RoundOutcome', 'RoundState', 'generate_grid',
    'JsonFileKeyValueStore', 'KeyValueStore', 'LeaderboardSnapshot', 'LocalLeaderboardStore',
    'MemoryKeyValueStore', 'ScoreEntry', 'RoundScheduler', 'create_session', 'score_round', 'SyncClient',
]
