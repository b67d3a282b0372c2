# fantasy_api/stats_refresh.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fantasy_api.errors import UpstreamUnavailable
from fantasy_api.models import PlayerStatRecord, RefreshResult, team_totals
from fantasy_api.name_matcher import NameMatcher
from fantasy_api.scorecard import ScorecardStatsExtractor
from fantasy_api.scoring import ScoringService, recalculate_points, selection_sides

logger = logging.getLogger(__name__)

_LIVE_STATES = ("in progress", "innings break", "stumps", "lunch", "tea", "drinks", "rain", "delay")
_COMPLETED_STATES = ("complete", "result", "abandon", "no result")


def session_status_from_header(header: Optional[Dict[str, Any]]) -> Optional[str]:
    """LIVE / COMPLETED from a scorecard matchHeader, None when it says nothing useful."""
    if not header:
        return None
    if header.get("complete") is True:
        return "COMPLETED"
    state = str(header.get("state") or "").strip().lower()
    if not state:
        return None
    if any(s in state for s in _COMPLETED_STATES):
        return "COMPLETED"
    if any(s in state for s in _LIVE_STATES):
        return "LIVE"
    return None


class StatsRefreshOrchestrator:
    """Scrape fresh stats for a session's selected players, store them, then regenerate all points rows."""

    def __init__(self, scoring: ScoringService, extractor: ScorecardStatsExtractor):
        self.scoring = scoring
        self.extractor = extractor

    def refresh(self, session_id: str) -> RefreshResult:
        s = self.scoring
        session = s.load_session(session_id)
        selection = s.load_frozen_selection(session.session_id)
        rule_set = s.load_rule_set(session)
        s.ensure_started(session)

        extract = self.extractor.extract_stats(session.real_match_id, use_cache=False)
        if extract is None:
            raise UpstreamUnavailable("Failed to fetch scorecard stats")

        matcher = NameMatcher(extract)
        resolved: Dict[str, PlayerStatRecord] = {}
        matched: List[str] = []
        unmatched: List[str] = []
        non_zero: List[str] = []

        for _, players, _ in selection_sides(selection):
            for token in players:
                pid = str(token)
                found = matcher.resolve(pid)
                if found is None:
                    unmatched.append(pid)
                    record = PlayerStatRecord.zero(pid)
                else:
                    matched.append(pid)
                    record = PlayerStatRecord(player_id=pid, **found.counts())
                if record.has_any():
                    non_zero.append(pid)
                resolved[pid] = record

        if unmatched:
            logger.warning(
                "Session %s: %d selected players could not be mapped to scorecard stats (sample: %s)",
                session.session_id,
                len(unmatched),
                unmatched[:6],
            )

        header = extract.match_header or {}
        with s.locks.for_session(session.session_id):
            for pid, record in resolved.items():
                s.stats.upsert_stat(session.session_id, pid, record)
            rows = recalculate_points(session, selection, rule_set, s.stats, s.breakdowns)

            status = session_status_from_header(header)
            if status and status != session.status:
                s.sessions.update_session_status(session.session_id, status)

        logger.info(
            "Refreshed session %s: %d stats, %d matched, %d non-zero, %d rows",
            session.session_id,
            len(resolved),
            len(matched),
            len(non_zero),
            len(rows),
        )

        return RefreshResult(
            session_id=session.session_id,
            stats_updated=len(resolved),
            matched_count=len(matched),
            non_zero_count=len(non_zero),
            unmatched_players=unmatched,
            rows=rows,
            source_url=extract.source_url,
            scorecard_state=header.get("state"),
            scorecard_status=header.get("status"),
            **team_totals(rows),
        )
