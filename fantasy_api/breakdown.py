# fantasy_api/breakdown.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fantasy_api.errors import NotFound
from fantasy_api.models import PlayerStatRecord, Rule, STAT_KEYS
from fantasy_api.points_engine import compute, stat_getter
from fantasy_api.rules import CAPTAIN_EVENT, COUNT_EVENTS, MILESTONE_EVENTS, milestone_met
from fantasy_api.scoring import selection_sides
from fantasy_api.store import SessionStore, StatsStore


def fmt_num(value: Any) -> str:
    """10.0 -> '10', 2.5 -> '2.5'"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _clean_num(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# -----------------------------
# Line builders
# -----------------------------
def count_line(event: str, count: Any, rule: Rule) -> Dict[str, Any]:
    label, _ = COUNT_EVENTS[event]
    points = count * rule.points * rule.multiplier
    if rule.multiplier == 1:
        formula = f"{fmt_num(count)} × {fmt_num(rule.points)} = {fmt_num(points)}"
    else:
        formula = f"{fmt_num(count)} × {fmt_num(rule.points)} × {fmt_num(rule.multiplier)} = {fmt_num(points)}"
    return {
        "kind": "count",
        "event": event,
        "label": label,
        "count": _clean_num(count),
        "points_per_unit": _clean_num(rule.points),
        "multiplier": _clean_num(rule.multiplier),
        "points": _clean_num(points),
        "formula": formula,
    }


def milestone_line(event: str, met: bool, rule: Rule) -> Dict[str, Any]:
    label = MILESTONE_EVENTS[event][0]
    points = rule.points * rule.multiplier if met else 0
    if not met:
        formula = "0 = 0"
    elif rule.multiplier == 1:
        formula = f"{fmt_num(rule.points)} = {fmt_num(points)}"
    else:
        formula = f"{fmt_num(rule.points)} × {fmt_num(rule.multiplier)} = {fmt_num(points)}"
    return {
        "kind": "milestone",
        "event": event,
        "label": label,
        "met": bool(met),
        "multiplier": _clean_num(rule.multiplier),
        "points": _clean_num(points),
        "formula": formula,
    }


def captain_line(multiplier: Any, before: Any, after: Any) -> Dict[str, Any]:
    return {
        "kind": "multiplier",
        "event": CAPTAIN_EVENT,
        "label": "Captain multiplier",
        "multiplier": _clean_num(multiplier),
        "before": _clean_num(before),
        "after": _clean_num(after),
        "points": _clean_num(after),
        "formula": f"{fmt_num(before)} × {fmt_num(multiplier)} = {fmt_num(after)}",
    }


def player_breakdown(player_id: str, rules: List[Rule], stats: Optional[PlayerStatRecord], is_captain: bool) -> Dict[str, Any]:
    """Totals from points_engine.compute, with one readable line per applied rule."""
    result = compute(stats, rules, is_captain)
    stat = stat_getter(stats)

    lines: List[Dict[str, Any]] = []
    for rule in rules or []:
        if rule is None or not rule.enabled:
            continue
        if rule.event in COUNT_EVENTS:
            lines.append(count_line(rule.event, stat(COUNT_EVENTS[rule.event][1]), rule))
        elif rule.event in MILESTONE_EVENTS:
            lines.append(milestone_line(rule.event, milestone_met(rule.event, stat), rule))

    captain = result.per_rule.get(CAPTAIN_EVENT)
    subtotal = result.total_points
    if captain is not None:
        subtotal = captain["before"]
        lines.append(captain_line(captain["multiplier"], captain["before"], captain["after"]))

    return {
        "player_id": str(player_id),
        "is_captain": bool(is_captain),
        "stats": {k: stat(k) for k in STAT_KEYS},
        "subtotal": _clean_num(subtotal),
        "total_points": _clean_num(result.total_points),
        "lines": lines,
    }


class BreakdownBuilder:
    """Human-readable per-player, per-rule breakdown for one session."""

    def __init__(self, sessions: SessionStore, stats: StatsStore):
        self.sessions = sessions
        self.stats = stats

    def build(self, session_id: str) -> Dict[str, Any]:
        session = self.sessions.get_session(session_id)
        if session is None:
            raise NotFound("MatchSession not found")
        rule_set = self.sessions.get_rule_set(session.rule_set_id)
        if rule_set is None:
            raise NotFound("RuleSet not found")
        selection = self.sessions.get_selection(session.session_id)
        if selection is None:
            raise NotFound("PlayerSelection not found")

        raw_by_player = {s.player_id: s for s in self.stats.list_stats(session.session_id)}

        teams: Dict[str, List[Dict[str, Any]]] = {}
        for team, players, captain in selection_sides(selection):
            teams[team] = [
                player_breakdown(
                    pid,
                    rule_set.rules,
                    raw_by_player.get(str(pid)),
                    captain is not None and str(pid) == str(captain),
                )
                for pid in players
            ]

        user_total = sum(p["total_points"] for p in teams["USER"])
        friend_total = sum(p["total_points"] for p in teams["FRIEND"])

        return {
            "session_id": session.session_id,
            "generated_at": datetime.utcnow().isoformat() + "Z",
            "match": {
                "real_match_id": session.real_match_id,
                "real_match_name": session.real_match_name,
                "status": session.status,
            },
            "friend": {
                "friend_id": session.friend_id,
                "friend_name": session.friend_name,
            },
            "rule_set": {
                "rule_set_id": rule_set.rule_set_id,
                "name": rule_set.name,
                "rules": [
                    {"event": r.event, "points": r.points, "multiplier": r.multiplier, "enabled": r.enabled}
                    for r in rule_set.rules
                ],
            },
            "selection": {
                "is_frozen": selection.is_frozen,
                "user_players": list(selection.user_players),
                "friend_players": list(selection.friend_players),
                "user_captain": selection.user_captain,
                "friend_captain": selection.friend_captain,
            },
            "teams": teams,
            "totals": {
                "user_total_points": _clean_num(user_total),
                "friend_total_points": _clean_num(friend_total),
                "total_points": _clean_num(user_total + friend_total),
            },
        }
