import json
import os

import pytest

from reaction_grid.services.games.local_store import (
    STORAGE_KEY,
    JsonFileKeyValueStore,
    LeaderboardSnapshot,
    LocalLeaderboardStore,
    MemoryKeyValueStore,
    ScoreEntry,
)


def _entry(score, time_ms, date=0):
    return ScoreEntry(score=score, reaction_time_ms=time_ms, recorded_at=date)


@pytest.fixture()
def store():
    return LocalLeaderboardStore(MemoryKeyValueStore())


def test_empty_store_loads_default(store):
    snapshot = store.load()
    assert snapshot == LeaderboardSnapshot()
    assert snapshot.top_entries == ()
    assert snapshot.best_time_ms is None


def test_keeps_top_ten_sorted_descending(store):
    for i in range(11):
        snapshot = store.record(_entry(score=100 * (i + 1), time_ms=300, date=i))
    scores = [e.score for e in snapshot.top_entries]
    assert len(scores) == 10
    assert scores == sorted(scores, reverse=True)
    assert scores == [1100, 1000, 900, 800, 700, 600, 500, 400, 300, 200]
    assert store.load() == snapshot


def test_best_time_survives_eviction(store):
    store.record(_entry(score=10, time_ms=50))
    for i, score in enumerate(range(100, 1001, 100)):
        snapshot = store.record(_entry(score=score, time_ms=200 + i))
    assert 10 not in [e.score for e in snapshot.top_entries]
    assert snapshot.best_time_ms == 50
    assert store.load().best_time_ms == 50


def test_best_time_is_running_minimum(store):
    times = [400, 320.5, 900, 180.25, 260]
    for t in times:
        snapshot = store.record(_entry(score=1, time_ms=t))
    assert snapshot.best_time_ms == min(times)


def test_equal_scores_keep_recording_order(store):
    store.record(_entry(score=500, time_ms=300, date=1))
    snapshot = store.record(_entry(score=500, time_ms=200, date=2))
    assert [e.recorded_at for e in snapshot.top_entries] == [1, 2]


def test_persisted_blob_format(store):
    store.record(ScoreEntry(score=1320, reaction_time_ms=183.4, recorded_at=1760850000000))
    assert store.kv.get(STORAGE_KEY) == {
        'topScores': [{'score': 1320, 'time': 183.4, 'date': 1760850000000}],
        'bestTime': 183.4,
    }


@pytest.mark.parametrize('blob', [
    'not json at all',
    '[1, 2, 3]',
    42,
    {'topScores': 'nope', 'bestTime': None},
    {'topScores': [{'score': 'x', 'time': 1, 'date': 1}], 'bestTime': None},
    {'topScores': [{'score': 1, 'time': -3, 'date': 1}], 'bestTime': None},
    {'topScores': [], 'bestTime': 'fast'},
    {'topScores': [None], 'bestTime': 10},
])
def test_corrupt_blob_loads_empty_default(blob):
    store = LocalLeaderboardStore(MemoryKeyValueStore({STORAGE_KEY: blob}))
    assert store.load() == LeaderboardSnapshot()


def test_corrupt_blob_is_replaced_on_next_record():
    store = LocalLeaderboardStore(MemoryKeyValueStore({STORAGE_KEY: '{broken'}))
    snapshot = store.record(_entry(score=700, time_ms=300))
    assert [e.score for e in snapshot.top_entries] == [700]
    assert snapshot.best_time_ms == 300


def test_json_string_blob_is_accepted():
    raw = json.dumps({'topScores': [{'score': 5, 'time': 9, 'date': 1}], 'bestTime': 9})
    store = LocalLeaderboardStore(MemoryKeyValueStore({STORAGE_KEY: raw}))
    assert store.load().top_entries == (_entry(5, 9, 1),)


def test_persist_failure_does_not_raise():
    class ReadOnlyStore(MemoryKeyValueStore):
        def set(self, key, value):
            raise OSError('read-only file system')

    store = LocalLeaderboardStore(ReadOnlyStore())
    snapshot = store.record(_entry(score=100, time_ms=120))
    assert snapshot.best_time_ms == 120


def test_json_file_store_round_trip(tmp_path):
    kv = JsonFileKeyValueStore(str(tmp_path / 'state'), scope='leaderboard')
    store = LocalLeaderboardStore(kv)
    store.record(_entry(score=900, time_ms=150, date=3))

    reopened = LocalLeaderboardStore(JsonFileKeyValueStore(str(tmp_path / 'state'), scope='leaderboard'))
    snapshot = reopened.load()
    assert snapshot.top_entries == (_entry(900, 150, 3),)
    assert snapshot.best_time_ms == 150
    # Atomic rewrite leaves no temp files behind
    assert os.listdir(tmp_path / 'state') == ['leaderboard.json']


def test_json_file_store_keeps_other_keys(tmp_path):
    kv = JsonFileKeyValueStore(str(tmp_path), scope='app')
    kv.set('theme', 'dark')
    LocalLeaderboardStore(kv).record(_entry(score=1, time_ms=1))
    assert kv.get('theme') == 'dark'


def test_unreadable_file_loads_empty_default(tmp_path):
    (tmp_path / 'leaderboard.json').write_text('{"truncated": ', encoding='utf-8')
    store = LocalLeaderboardStore(JsonFileKeyValueStore(str(tmp_path), scope='leaderboard'))
    assert store.load() == LeaderboardSnapshot()
    store.record(_entry(score=10, time_ms=20))
    assert store.load().best_time_ms == 20
