# fantasy_api/core.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from fantasy_api.breakdown import BreakdownBuilder
from fantasy_api.cache import CacheLayer
from fantasy_api.config import CRICBUZZ_BASE_URL, cache_ttls
from fantasy_api.errors import NotFound
from fantasy_api.fetcher import PageFetcher
from fantasy_api.match_list import MatchListScraper
from fantasy_api.models import (
    CalculationResult,
    MatchSession,
    MatchSummary,
    PlayerStatRecord,
    RefreshResult,
    RuleSet,
    Selection,
    SquadResult,
)
from fantasy_api.polling import StatsPoller
from fantasy_api.rules import sanitize_rules
from fantasy_api.scorecard import ScorecardStatsExtractor
from fantasy_api.scoring import ScoringService, SessionLocks
from fantasy_api.selection import freeze_selection, save_selection
from fantasy_api.share import format_breakdown_share_text, format_share_text
from fantasy_api.squads import SquadResolver
from fantasy_api.stats_refresh import StatsRefreshOrchestrator
from fantasy_api.store import BreakdownStore, SessionStore, StatsStore

logger = logging.getLogger(__name__)


class FantasyCore:
    """
    Wires the scrapers, stores and scoring services together.

    Every collaborator can be injected; tests typically pass a fake fetcher
    and zero scraper delays.
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        cache: Optional[CacheLayer] = None,
        sessions: Optional[SessionStore] = None,
        stats: Optional[StatsStore] = None,
        breakdowns: Optional[BreakdownStore] = None,
        base_url: str = CRICBUZZ_BASE_URL,
        scraper_delay_seconds: Optional[float] = None,
    ):
        self.fetcher = fetcher or PageFetcher()
        self.cache = cache or CacheLayer(cache_ttls())
        self.sessions = sessions or SessionStore()
        self.stats = stats or StatsStore()
        self.breakdowns = breakdowns or BreakdownStore()
        self.locks = SessionLocks()

        # None keeps each component's configured politeness delay
        delays: Dict[str, Any] = {}
        if scraper_delay_seconds is not None:
            delays = {"delay_seconds": scraper_delay_seconds}

        self.match_lists = MatchListScraper(self.fetcher, self.cache, base_url=base_url, **delays)
        if scraper_delay_seconds is not None:
            self.match_lists.enrich_delay_seconds = scraper_delay_seconds
        self.squads = SquadResolver(self.fetcher, self.cache, self.match_lists, base_url=base_url, **delays)
        self.scorecards = ScorecardStatsExtractor(self.fetcher, self.cache, base_url=base_url, **delays)

        self.scoring = ScoringService(
            self.sessions,
            self.stats,
            self.breakdowns,
            locks=self.locks,
            match_state=self.match_lists.match_state,
        )
        self.refresher = StatsRefreshOrchestrator(self.scoring, self.scorecards)
        self.breakdown_builder = BreakdownBuilder(self.sessions, self.stats)
        self.poller = StatsPoller(self.sessions, self.refresher)

    # -----------------------------
    # Match data
    # -----------------------------
    def list_live_and_today_matches(self, use_cache: bool = True) -> List[MatchSummary]:
        return self.match_lists.list_live_and_today(use_cache=use_cache)

    def list_upcoming_matches(self, use_cache: bool = True) -> List[MatchSummary]:
        return self.match_lists.list_upcoming(use_cache=use_cache)

    def resolve_squad(self, match_id: str) -> Optional[SquadResult]:
        return self.squads.resolve_squad(match_id)

    # -----------------------------
    # Rule sets + sessions
    # -----------------------------
    def create_rule_set(
        self,
        user_id: str,
        name: str,
        rules: Iterable[Any],
        friend_id: Optional[str] = None,
        is_template: bool = False,
        description: str = "",
    ) -> RuleSet:
        cleaned = sanitize_rules(rules)
        if not cleaned:
            raise ValueError("Rule set must contain at least one known rule")
        return self.sessions.save_rule_set(
            RuleSet(
                rule_set_id=uuid.uuid4().hex,
                user_id=str(user_id),
                name=str(name),
                rules=cleaned,
                friend_id=friend_id,
                is_template=bool(is_template),
                description=description or "",
            )
        )

    def create_session(
        self,
        user_id: str,
        friend_id: str,
        rule_set_id: str,
        real_match_id: str,
        real_match_name: str = "",
        friend_name: Optional[str] = None,
    ) -> MatchSession:
        if self.sessions.get_rule_set(rule_set_id) is None:
            raise NotFound("RuleSet not found")
        if not str(real_match_id or "").strip():
            raise ValueError("real_match_id is required")
        return self.sessions.save_session(
            MatchSession(
                session_id=uuid.uuid4().hex,
                user_id=str(user_id),
                friend_id=str(friend_id),
                rule_set_id=str(rule_set_id),
                real_match_id=str(real_match_id).strip(),
                real_match_name=real_match_name or "",
                friend_name=friend_name,
            )
        )

    def get_session(self, session_id: str) -> MatchSession:
        return self.scoring.load_session(session_id)

    # -----------------------------
    # Raw stats (manual entry)
    # -----------------------------
    def list_raw_stats(self, session_id: str) -> List[PlayerStatRecord]:
        session = self.scoring.load_session(session_id)
        return self.stats.list_stats(session.session_id)

    def upsert_raw_stats(self, session_id: str, stats: Iterable[Mapping[str, Any]]) -> List[PlayerStatRecord]:
        """
        Write manually entered counts for some players of a session.

        Rows without a player id are skipped. Existing points rows are dropped,
        so the next calculation reflects the new counts.
        """
        session = self.scoring.load_session(session_id)
        rows = list(stats or [])
        if not rows:
            raise ValueError("stats[] is required")
        records = [r for r in (PlayerStatRecord.from_mapping(row) for row in rows) if r is not None]

        with self.locks.for_session(session.session_id):
            for record in records:
                self.stats.upsert_stat(session.session_id, record.player_id, record)
            dropped = self.breakdowns.delete_all(session.session_id)

        logger.info(
            "Upserted %d raw stat rows for session %s (dropped %d breakdown rows)",
            len(records),
            session.session_id,
            dropped,
        )
        return self.stats.list_stats(session.session_id)

    # -----------------------------
    # Selection
    # -----------------------------
    def save_selection(
        self,
        session_id: str,
        user_players: Sequence[str],
        user_captain: Optional[str],
        friend_players: Sequence[str],
        friend_captain: Optional[str],
    ) -> Selection:
        with self.locks.for_session(session_id):
            return save_selection(self.sessions, session_id, user_players, user_captain, friend_players, friend_captain)

    def freeze_selection(self, session_id: str) -> Selection:
        with self.locks.for_session(session_id):
            return freeze_selection(self.sessions, session_id)

    # -----------------------------
    # Scoring
    # -----------------------------
    def calculate_session_points(self, session_id: str, force: bool = False) -> CalculationResult:
        return self.scoring.calculate_session_points(session_id, force=force)

    def refresh_session_stats(self, session_id: str) -> RefreshResult:
        return self.refresher.refresh(session_id)

    def build_detailed_breakdown(self, session_id: str) -> Dict[str, Any]:
        return self.breakdown_builder.build(session_id)

    def share_text(self, session_id: str, detailed: bool = False, user_name: Optional[str] = None) -> str:
        session = self.scoring.load_session(session_id)
        selection = self.sessions.get_selection(session.session_id)
        rule_set = self.sessions.get_rule_set(session.rule_set_id)
        rule_set_name = rule_set.name if rule_set else None

        if detailed:
            return format_breakdown_share_text(
                self.build_detailed_breakdown(session.session_id),
                session=session,
                selection=selection,
                user_name=user_name,
                friend_name=session.friend_name,
                rule_set_name=rule_set_name,
            )

        return format_share_text(
            session,
            selection,
            self.breakdowns.list_rows(session.session_id),
            user_name=user_name,
            friend_name=session.friend_name,
            rule_set_name=rule_set_name,
        )

    # -----------------------------
    # Lifecycle
    # -----------------------------
    def close(self) -> None:
        self.poller.stop()
        self.fetcher.close()
        self.cache.clear()
