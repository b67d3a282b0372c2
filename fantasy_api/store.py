# fantasy_api/store.py
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from fantasy_api.models import BreakdownRow, MatchSession, PlayerStatRecord, RuleSet, Selection, SessionStatus


# -----------------------------
# Sessions / selections / rule sets
# -----------------------------
class SessionStore:
    """In-memory session, selection and rule-set records."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, MatchSession] = {}
        self._selections: Dict[str, Selection] = {}
        self._rule_sets: Dict[str, RuleSet] = {}

    def get_session(self, session_id: str) -> Optional[MatchSession]:
        with self._lock:
            return self._sessions.get(str(session_id))

    def get_selection(self, session_id: str) -> Optional[Selection]:
        with self._lock:
            return self._selections.get(str(session_id))

    def get_rule_set(self, rule_set_id: str) -> Optional[RuleSet]:
        with self._lock:
            return self._rule_sets.get(str(rule_set_id))

    def save_session(self, session: MatchSession) -> MatchSession:
        with self._lock:
            self._sessions[str(session.session_id)] = session
        return session

    def save_selection(self, selection: Selection) -> Selection:
        with self._lock:
            self._selections[str(selection.session_id)] = selection
        return selection

    def save_rule_set(self, rule_set: RuleSet) -> RuleSet:
        with self._lock:
            self._rule_sets[str(rule_set.rule_set_id)] = rule_set
        return rule_set

    def update_session_status(self, session_id: str, status: SessionStatus) -> Optional[MatchSession]:
        with self._lock:
            session = self._sessions.get(str(session_id))
            if session is None:
                return None
            updated = replace(session, status=status)
            self._sessions[str(session_id)] = updated
            return updated

    def list_recent_sessions(self, since: datetime) -> List[MatchSession]:
        """Sessions created at or after `since`, newest first."""
        with self._lock:
            sessions = [s for s in self._sessions.values() if s.created_at >= since]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)


# -----------------------------
# Raw stats
# -----------------------------
class StatsStore:
    """Raw per-player stats keyed by (session_id, player_id); upserts replace."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, Dict[str, PlayerStatRecord]] = {}

    def upsert_stat(self, session_id: str, player_id: str, counts: PlayerStatRecord) -> None:
        pid = str(player_id)
        record = counts if counts.player_id == pid else replace(counts, player_id=pid)
        with self._lock:
            self._rows.setdefault(str(session_id), {})[pid] = record

    def list_stats(self, session_id: str) -> List[PlayerStatRecord]:
        with self._lock:
            return list(self._rows.get(str(session_id), {}).values())


# -----------------------------
# Breakdown rows
# -----------------------------
class BreakdownStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, List[BreakdownRow]] = {}

    def delete_all(self, session_id: str) -> int:
        with self._lock:
            return len(self._rows.pop(str(session_id), []))

    def insert_many(self, rows: Iterable[BreakdownRow]) -> List[BreakdownRow]:
        inserted = list(rows)
        with self._lock:
            for row in inserted:
                self._rows.setdefault(str(row.session_id), []).append(row)
        return inserted

    def list_rows(self, session_id: str) -> List[BreakdownRow]:
        with self._lock:
            return list(self._rows.get(str(session_id), []))
