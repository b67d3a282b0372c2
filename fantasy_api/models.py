# fantasy_api/models.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional


# -----------------------------
# Enumerations
# -----------------------------
MatchType = Literal["T20", "ODI", "TEST"]
MatchStatus = Literal["LIVE", "TODAY", "UPCOMING", "COMPLETED"]
SessionStatus = Literal["UPCOMING", "LIVE", "COMPLETED"]
Team = Literal["USER", "FRIEND"]

STAT_KEYS = ("runs", "fours", "sixes", "wickets", "catches", "runouts")


# -----------------------------
# Scraped match data
# -----------------------------
@dataclass(frozen=True)
class TeamRef:
    name: str
    team_id: Optional[str] = None
    short_name: Optional[str] = None


@dataclass
class MatchSummary:
    match_id: str
    source_url: str
    match_status: MatchStatus
    match_name: Optional[str] = None
    teams: List[TeamRef] = field(default_factory=list)
    match_type: Optional[MatchType] = None

    # Either epoch-ms from embedded page data or the card's schedule text
    start_time: Optional[str] = None


@dataclass
class SquadResult:
    match_id: str
    match_url: str
    players: List[str]
    playing_xi: List[str]
    source_url: Optional[str] = None
    match_name: Optional[str] = None
    teams: List[TeamRef] = field(default_factory=list)


@dataclass(frozen=True)
class PlayerStatRecord:
    """
    Counting stats for one player in one match.
    Additive across innings: a player batting twice accumulates.
    """
    player_id: str
    runs: int = 0
    fours: int = 0
    sixes: int = 0
    wickets: int = 0
    catches: int = 0
    runouts: int = 0

    def plus(self, **deltas: int) -> "PlayerStatRecord":
        return replace(self, **{k: getattr(self, k) + int(v) for k, v in deltas.items()})

    def counts(self) -> Dict[str, int]:
        return {k: getattr(self, k) for k in STAT_KEYS}

    def has_any(self) -> bool:
        return any(self.counts().values())

    @classmethod
    def zero(cls, player_id: str) -> "PlayerStatRecord":
        return cls(player_id=str(player_id))

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Optional["PlayerStatRecord"]:
        """
        Manually entered counts: {"player_id": ..., "runs": ..., ...}.
        Rows without a player id give None; missing counts are 0.
        """
        player_id = str(row.get("player_id") or row.get("playerId") or "").strip()
        if not player_id:
            return None
        counts: Dict[str, int] = {}
        for key in STAT_KEYS:
            value = row.get(key) or 0
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"{key} for {player_id} must be a non-negative number")
            counts[key] = int(value)
        return cls(player_id=player_id, **counts)


@dataclass
class ScorecardExtract:
    match_id: str
    player_stats_by_id: Dict[str, PlayerStatRecord]
    player_name_by_id: Dict[str, str]
    source_url: Optional[str] = None
    match_header: Optional[Dict[str, Any]] = None


# -----------------------------
# Rules + sessions
# -----------------------------
@dataclass(frozen=True)
class Rule:
    event: str
    points: float = 0
    multiplier: float = 1
    enabled: bool = True


@dataclass
class RuleSet:
    rule_set_id: str
    user_id: str
    name: str
    rules: List[Rule] = field(default_factory=list)
    friend_id: Optional[str] = None

    # True = reusable template, False = scoped to one friend
    is_template: bool = False
    description: str = ""


@dataclass
class MatchSession:
    session_id: str
    user_id: str
    friend_id: str
    rule_set_id: str
    real_match_id: str
    real_match_name: str
    status: SessionStatus = "UPCOMING"
    created_at: datetime = field(default_factory=datetime.utcnow)
    friend_name: Optional[str] = None


@dataclass
class Selection:
    session_id: str
    user_players: List[str] = field(default_factory=list)
    user_captain: Optional[str] = None
    friend_players: List[str] = field(default_factory=list)
    friend_captain: Optional[str] = None
    is_frozen: bool = False


# -----------------------------
# Scoring output
# -----------------------------
@dataclass
class PointsResult:
    total_points: float
    per_rule: Dict[str, Any]


@dataclass
class BreakdownRow:
    session_id: str
    team: Team
    player_id: str
    total_points: float
    rule_wise_breakdown: Dict[str, Any]


@dataclass
class CalculationResult:
    session_id: str
    message: str
    already_calculated: bool
    rows: List[BreakdownRow]
    user_total_points: float
    friend_total_points: float
    total_points: float


@dataclass
class RefreshResult:
    session_id: str
    stats_updated: int
    matched_count: int
    non_zero_count: int
    unmatched_players: List[str]
    rows: List[BreakdownRow]
    user_total_points: float
    friend_total_points: float
    total_points: float
    source_url: Optional[str] = None
    scorecard_state: Optional[str] = None
    scorecard_status: Optional[str] = None
    message: str = "Stats refreshed and points recalculated"


def team_totals(rows: List[BreakdownRow]) -> Dict[str, float]:
    """Sum total_points per team over breakdown rows."""
    user = sum(r.total_points for r in rows if r.team == "USER")
    friend = sum(r.total_points for r in rows if r.team == "FRIEND")
    return {
        "user_total_points": user,
        "friend_total_points": friend,
        "total_points": user + friend,
    }
