# fantasy_api/scoring.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from fantasy_api.errors import NotFound, PreconditionViolation
from fantasy_api.models import (
    BreakdownRow,
    CalculationResult,
    MatchSession,
    PlayerStatRecord,
    RuleSet,
    Selection,
    team_totals,
)
from fantasy_api.points_engine import compute
from fantasy_api.store import BreakdownStore, SessionStore, StatsStore

logger = logging.getLogger(__name__)

# match id -> LIVE / TODAY / COMPLETED / UPCOMING / UNKNOWN
MatchStateLookup = Callable[[str], str]


class SessionLocks:
    """
    One lock per session id, so destructive regenerations never interleave.

    A session's lock only exists while some thread holds or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # session id -> [lock, holders + waiters]
        self._locks: Dict[str, List[Any]] = {}

    @contextmanager
    def for_session(self, session_id: str) -> Iterator[None]:
        key = str(session_id)
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def active_sessions(self) -> int:
        with self._guard:
            return len(self._locks)


def selection_sides(selection: Selection) -> List[Tuple[str, List[str], Optional[str]]]:
    return [
        ("USER", list(selection.user_players), selection.user_captain),
        ("FRIEND", list(selection.friend_players), selection.friend_captain),
    ]


def recalculate_points(
    session: MatchSession,
    selection: Selection,
    rule_set: RuleSet,
    stats: StatsStore,
    breakdowns: BreakdownStore,
) -> List[BreakdownRow]:
    """
    Delete every breakdown row of the session and insert a freshly computed set.

    Rows are built before anything is deleted; callers hold the session lock.
    """
    raw_by_player = {s.player_id: s for s in stats.list_stats(session.session_id)}

    rows: List[BreakdownRow] = []
    for team, players, captain in selection_sides(selection):
        for player_id in players:
            pid = str(player_id)
            raw = raw_by_player.get(pid) or PlayerStatRecord.zero(pid)
            is_captain = captain is not None and pid == str(captain)
            result = compute(raw, rule_set.rules, is_captain)
            rows.append(
                BreakdownRow(
                    session_id=session.session_id,
                    team=team,
                    player_id=pid,
                    total_points=result.total_points,
                    rule_wise_breakdown=result.per_rule,
                )
            )

    breakdowns.delete_all(session.session_id)
    return breakdowns.insert_many(rows)


class ScoringService:
    def __init__(
        self,
        sessions: SessionStore,
        stats: StatsStore,
        breakdowns: BreakdownStore,
        locks: Optional[SessionLocks] = None,
        match_state: Optional[MatchStateLookup] = None,
    ):
        self.sessions = sessions
        self.stats = stats
        self.breakdowns = breakdowns
        self.locks = locks or SessionLocks()
        self.match_state = match_state

    # -----------------------------
    # Shared precondition checks
    # -----------------------------
    def load_session(self, session_id: str) -> MatchSession:
        session = self.sessions.get_session(session_id)
        if session is None:
            raise NotFound("MatchSession not found")
        return session

    def ensure_started(self, session: MatchSession) -> None:
        if self.match_state is None:
            return
        if self.match_state(session.real_match_id) == "UPCOMING":
            raise PreconditionViolation("Match not started yet")

    def load_frozen_selection(self, session_id: str) -> Selection:
        selection = self.sessions.get_selection(session_id)
        if selection is None:
            raise NotFound("PlayerSelection not found")
        if not selection.is_frozen:
            raise PreconditionViolation("PlayerSelection must be frozen")
        return selection

    def load_rule_set(self, session: MatchSession) -> RuleSet:
        rule_set = self.sessions.get_rule_set(session.rule_set_id)
        if rule_set is None:
            raise NotFound("RuleSet not found")
        return rule_set

    # -----------------------------
    # Calculation
    # -----------------------------
    def calculate_session_points(self, session_id: str, force: bool = False) -> CalculationResult:
        """
        Compute breakdown rows from the stored raw stats.

        Without force, existing rows are returned untouched (already_calculated=True).
        With force, rows are deleted and regenerated.
        """
        session = self.load_session(session_id)
        self.ensure_started(session)
        selection = self.load_frozen_selection(session.session_id)

        with self.locks.for_session(session.session_id):
            existing = self.breakdowns.list_rows(session.session_id)
            if existing and not force:
                return CalculationResult(
                    session_id=session.session_id,
                    message="Points already calculated for this session",
                    already_calculated=True,
                    rows=existing,
                    **team_totals(existing),
                )

            rule_set = self.load_rule_set(session)
            rows = recalculate_points(session, selection, rule_set, self.stats, self.breakdowns)

        logger.info("Calculated %d breakdown rows for session %s (force=%s)", len(rows), session.session_id, force)
        return CalculationResult(
            session_id=session.session_id,
            message="Points calculated successfully",
            already_calculated=False,
            rows=rows,
            **team_totals(rows),
        )
