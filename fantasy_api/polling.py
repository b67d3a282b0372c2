# fantasy_api/polling.py
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from fantasy_api.config import (
    ENABLE_STATS_POLLING,
    STATS_POLL_INTERVAL_SECONDS,
    STATS_POLL_LOOKBACK_HOURS,
    STATS_POLL_MAX_SESSIONS,
)
from fantasy_api.errors import FantasyError
from fantasy_api.stats_refresh import StatsRefreshOrchestrator
from fantasy_api.store import SessionStore

logger = logging.getLogger(__name__)


class StatsPoller:
    """
    Periodically refresh stats for recently created sessions whose selection is frozen.

    Only sessions created within the lookback window are considered, newest first,
    so old history is not scraped forever.
    """

    def __init__(
        self,
        sessions: SessionStore,
        refresher: StatsRefreshOrchestrator,
        interval_seconds: float = STATS_POLL_INTERVAL_SECONDS,
        max_sessions: int = STATS_POLL_MAX_SESSIONS,
        lookback_hours: float = STATS_POLL_LOOKBACK_HOURS,
        enabled: bool = ENABLE_STATS_POLLING,
    ):
        self.sessions = sessions
        self.refresher = refresher
        self.interval_seconds = interval_seconds
        self.max_sessions = max_sessions
        self.lookback_hours = lookback_hours
        self.enabled = enabled

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """One polling tick. Per-session failures are logged and counted, never raised."""
        now = now or datetime.utcnow()
        since = now - timedelta(hours=self.lookback_hours)

        recent = self.sessions.list_recent_sessions(since)[: self.max_sessions]
        summary = {"considered": len(recent), "refreshed": 0, "skipped": 0, "failed": 0}

        for session in recent:
            selection = self.sessions.get_selection(session.session_id)
            if selection is None or not selection.is_frozen:
                summary["skipped"] += 1
                continue
            try:
                self.refresher.refresh(session.session_id)
                summary["refreshed"] += 1
            except FantasyError as e:
                # not started yet / scorecard unavailable / missing records
                summary["failed"] += 1
                logger.warning("Stats refresh skipped for session %s: %s", session.session_id, e)
            except Exception:
                summary["failed"] += 1
                logger.exception("Stats refresh failed for session %s", session.session_id)

        if recent:
            logger.info("Stats polling tick: %s", summary)
        return summary

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Stats polling tick failed")

    def start(self) -> bool:
        if not self.enabled:
            logger.info("Stats polling disabled")
            return False
        if self._thread is not None and self._thread.is_alive():
            return True

        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="stats-poller", daemon=True)
        self._thread.start()
        logger.info(
            "Stats polling started (interval=%ss, max=%d/tick, lookback=%sh)",
            self.interval_seconds,
            self.max_sessions,
            self.lookback_hours,
        )
        return True

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
