"""Best-effort bridge from finished rounds to the score server.

Every network call runs on a single background worker so the game loop never
waits on I/O. Failures are logged and the returned future resolves to None;
nothing is raised back into gameplay.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class SyncClient:
    def __init__(self, base_url: str, fid: Optional[int] = None, session: requests.Session = None,
                 timeout: float = 5.0, executor: ThreadPoolExecutor = None):
        self.base_url = base_url.rstrip('/')
        self.fid = fid
        self.session = session or requests.Session()
        self.timeout = timeout
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='score-sync')

    def _post(self, path: str, payload: dict):
        url = f'{self.base_url}{path}'
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning(f"[sync-failed] POST {path} fid={self.fid}: {exc}")
            return None

    def _queue(self, path: str, payload: dict) -> Optional[Future]:
        try:
            return self._executor.submit(self._post, path, payload)
        except RuntimeError as exc:
            # Executor already shut down
            logger.warning(f"[sync-failed] {path} not queued: {exc}")
            return None

    def submit_score(self, score: int, reaction_time_ms: float) -> Optional[Future]:
        """Queue a POST /score; returns the future, or None when there is no identity."""
        if self.fid is None:
            logger.debug("[sync-skip] no fid, score not submitted")
            return None
        payload = {'fid': self.fid, 'score': score, 'time': reaction_time_ms}
        return self._queue('/score', payload)

    def sync_profile(self, user: dict, wallet_address: Optional[str] = None) -> Optional[Future]:
        """Queue a POST /user for the given profile.

        A connected wallet replaces any verifications on the profile.
        """
        if not user or not user.get('fid'):
            logger.debug("[sync-skip] profile without fid")
            return None
        profile = dict(user)
        if wallet_address:
            profile['verifications'] = [wallet_address]
        if self.fid is None:
            self.fid = profile['fid']
        return self._queue('/user', {'user': profile})

    def fetch_leaderboard(self, limit: Optional[int] = None) -> list:
        """Blocking read of the global top-N. Raises on failure."""
        params = {'limit': limit} if limit is not None else None
        resp = self.session.get(f'{self.base_url}/score', params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json().get('leaderboard', [])

    def close(self) -> None:
        self._executor.shutdown(wait=False)
