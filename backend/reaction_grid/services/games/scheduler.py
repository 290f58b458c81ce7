import asyncio
import logging
import random
from typing import Callable, Optional

from config import Config
from .grid import Round, RoundOutcome, RoundState, generate_grid
from .local_store import JsonFileKeyValueStore, LeaderboardSnapshot, LocalLeaderboardStore, ScoreEntry
from .scoring import score_round
from .sync import SyncClient

logger = logging.getLogger(__name__)

SCORE_POLICIES = ('cumulative', 'round')


class RoundScheduler:
    """Per-session round state machine: idle -> waiting -> ready -> done.

    - Runs on a single asyncio loop; the only suspension points are the
      waiting->ready reveal and the done->waiting auto-advance
    - Holds at most one pending timer; every new schedule, restart, or
      teardown cancels the previous one first
    - Timer callbacks re-check the round number and state they were armed
      for and abort on mismatch
    - Session score follows SESSION_SCORE_POLICY: 'cumulative' sums round
      scores since the last start, 'round' keeps only the latest round's
    """

    def __init__(self, store: Optional[LocalLeaderboardStore] = None, sync: Optional[SyncClient] = None,
                 config=Config, loop: Optional[asyncio.AbstractEventLoop] = None,
                 rng: Optional[random.Random] = None,
                 on_change: Optional[Callable[['RoundScheduler'], None]] = None, owns_sync: bool = False):
        policy = getattr(config, 'SESSION_SCORE_POLICY', 'cumulative')
        if policy not in SCORE_POLICIES:
            raise ValueError(f"unknown SESSION_SCORE_POLICY {policy!r}")
        wait_min = int(getattr(config, 'WAIT_MIN_MS', 1500))
        wait_max = int(getattr(config, 'WAIT_MAX_MS', 3500))
        if wait_min < 0 or wait_max < wait_min:
            raise ValueError(f"invalid wait window {wait_min}-{wait_max}ms")

        self.store = store
        self.sync = sync
        self._owns_sync = owns_sync
        self.policy = policy
        self.grid_size = int(getattr(config, 'GRID_SIZE', 16))
        self.wait_range_ms = (wait_min, wait_max)
        self.advance_delay_ms = int(getattr(config, 'ADVANCE_DELAY_MS', 1500))
        self._loop = loop
        self._rng = rng or random.Random()
        self._on_change = on_change

        self._timer: Optional[asyncio.TimerHandle] = None
        self._round_counter = 0
        self.round: Optional[Round] = None
        self.score = 0
        self.streak = 0
        self.last_round_score: Optional[int] = None
        self.last_reaction_ms: Optional[float] = None
        self.snapshot: LeaderboardSnapshot = store.load() if store is not None else LeaderboardSnapshot()

    @property
    def state(self) -> RoundState:
        return self.round.state if self.round is not None else RoundState.IDLE

    @property
    def outcome(self) -> Optional[RoundOutcome]:
        return self.round.outcome if self.round is not None else None

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            logger.exception("[listener-error] on_change raised")

    def _cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self, delay_ms: float, callback, round_number: int) -> None:
        self._cancel_pending()
        self._timer = self._get_loop().call_later(delay_ms / 1000.0, callback, round_number)
        logger.debug(f"[timer-set] round={round_number} state={self.state.value} delay={delay_ms:.0f}ms")

    # ---- Transitions ----

    def start(self) -> None:
        """Start or restart the session with a fresh score and streak."""
        self._cancel_pending()
        self.score = 0
        self.streak = 0
        self.last_round_score = None
        self.last_reaction_ms = None
        self._begin_round()

    def close(self) -> None:
        """Tear the session down; any pending transition is discarded.

        A sync client built by ``create_session`` is shut down as well; one
        passed in by the caller stays open.
        """
        self._cancel_pending()
        self.round = None
        if self._owns_sync and self.sync is not None:
            self.sync.close()
            self._owns_sync = False
        self._notify()

    def _begin_round(self) -> None:
        self._round_counter += 1
        self.round = Round(number=self._round_counter)
        delay = self._rng.uniform(*self.wait_range_ms)
        self._schedule(delay, self._reveal, self.round.number)
        self._notify()

    def _timer_matches(self, expected_round: int, expected_state: RoundState) -> bool:
        rnd = self.round
        logger.debug(
            f"[timer-fire] expected_round={expected_round} expected_state={expected_state.value} "
            f"actual_round={rnd.number if rnd else None} actual_state={self.state.value}"
        )
        if rnd is None or rnd.number != expected_round or rnd.state != expected_state:
            logger.info(f"[timer-abort] round={expected_round} mismatch round/state")
            return False
        return True

    def _reveal(self, expected_round: int) -> None:
        if not self._timer_matches(expected_round, RoundState.WAITING):
            return
        self._timer = None
        rnd = self.round
        rnd.cells, rnd.target_index = generate_grid(self.grid_size, self._rng)
        rnd.ready_at = self._get_loop().time()
        rnd.state = RoundState.READY
        self._notify()

    def _advance(self, expected_round: int) -> None:
        if not self._timer_matches(expected_round, RoundState.DONE) or self.outcome != RoundOutcome.SUCCESS:
            return
        self._timer = None
        self._begin_round()

    def tap(self, index: int) -> Optional[RoundOutcome]:
        """Resolve a tap on cell ``index``.

        Returns the round outcome, or None when the tap was ignored because
        no grid is live.
        """
        rnd = self.round
        if rnd is None or rnd.state != RoundState.READY:
            return None
        if not 0 <= index < len(rnd.cells):
            raise IndexError(f"cell {index} outside grid of {len(rnd.cells)}")

        reaction_ms = max(0.0, (self._get_loop().time() - rnd.ready_at) * 1000.0)
        rnd.state = RoundState.DONE
        if index == rnd.target_index:
            self._on_success(rnd, reaction_ms)
        else:
            rnd.outcome = RoundOutcome.FAILURE
            self.streak = 0
            logger.info(f"[round-failed] round={rnd.number} cell={index} score={self.score}")
        self._notify()
        return rnd.outcome

    def _on_success(self, rnd: Round, reaction_ms: float) -> None:
        rnd.outcome = RoundOutcome.SUCCESS
        self.streak += 1
        round_score = score_round(reaction_ms, self.streak)
        self.last_round_score = round_score
        self.last_reaction_ms = reaction_ms
        self.score = self.score + round_score if self.policy == 'cumulative' else round_score
        logger.info(
            f"[round-success] round={rnd.number} reaction={reaction_ms:.0f}ms streak={self.streak} "
            f"round_score={round_score} session_score={self.score}"
        )
        self._publish(ScoreEntry.now(self.score, reaction_ms))
        self._schedule(self.advance_delay_ms, self._advance, rnd.number)

    def _publish(self, entry: ScoreEntry) -> None:
        # Recording and syncing must never stop the round machine
        if self.store is not None:
            try:
                self.snapshot = self.store.record(entry)
            except Exception:
                logger.exception("[local-store] record failed")
        if self.sync is not None:
            try:
                self.sync.submit_score(entry.score, entry.reaction_time_ms)
            except Exception:
                logger.exception("[sync-failed] submit_score raised")


def create_session(config=Config, fid: Optional[int] = None, **kwargs) -> RoundScheduler:
    """Wire a scheduler to the on-disk history and the score server from config."""
    store = LocalLeaderboardStore(
        JsonFileKeyValueStore(config.LOCAL_STORE_PATH, scope='leaderboard'),
        limit=int(getattr(config, 'LOCAL_TOP_N', 10)),
    )
    sync = SyncClient(config.SCORE_API_URL, fid=fid, timeout=float(getattr(config, 'SYNC_TIMEOUT_SEC', 5)))
    return RoundScheduler(store=store, sync=sync, config=config, owns_sync=True, **kwargs)
