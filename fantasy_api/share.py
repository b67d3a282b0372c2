# fantasy_api/share.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fantasy_api.breakdown import fmt_num
from fantasy_api.models import BreakdownRow, MatchSession, Selection, team_totals


def _header(
    session: Optional[MatchSession],
    selection: Optional[Selection],
    you: str,
    friend_name: Optional[str],
    rule_set_name: Optional[str],
) -> List[str]:
    match_name = (session.real_match_name or session.real_match_id) if session else None
    friend_label = friend_name or "Friend"
    return [
        f"Match: {match_name or 'Match'}",
        f"You: {you}",
        f"Friend: {friend_name or 'N/A'}",
        f"Ruleset: {rule_set_name or 'N/A'}",
        f"{you} Captain: {(selection.user_captain if selection else None) or 'N/A'}",
        f"{friend_label} Captain: {(selection.friend_captain if selection else None) or 'N/A'}",
    ]


def _footer(you: str, friend_name: Optional[str], user_total: Any, friend_total: Any, total: Any) -> List[str]:
    return [
        f"{you} Points: {fmt_num(user_total)}",
        f"{friend_name or 'Friend'} Points: {fmt_num(friend_total)}",
        f"Total Points: {fmt_num(total)}",
    ]


def format_share_text(
    session: Optional[MatchSession],
    selection: Optional[Selection],
    rows: List[BreakdownRow],
    user_name: Optional[str] = None,
    friend_name: Optional[str] = None,
    rule_set_name: Optional[str] = None,
) -> str:
    """Plain-text result summary: per-team player points, highest first."""
    you = user_name or "My"
    lines = _header(session, selection, you, friend_name, rule_set_name)

    for title, team in ((f"{you} Player Points:", "USER"), (f"{friend_name or 'Friend'} Player Points:", "FRIEND")):
        team_rows = sorted((r for r in rows if r.team == team), key=lambda r: r.total_points, reverse=True)
        lines.append("")
        lines.append(title)
        if not team_rows:
            lines.append("No points available")
        for idx, r in enumerate(team_rows, start=1):
            lines.append(f"{idx}. {r.player_id or 'Unknown'} - {fmt_num(r.total_points)}")

    totals = team_totals(rows)
    lines.append("")
    lines.extend(
        _footer(you, friend_name, totals["user_total_points"], totals["friend_total_points"], totals["total_points"])
    )
    return "\n".join(lines)


def format_breakdown_share_text(
    breakdown: Dict[str, Any],
    session: Optional[MatchSession] = None,
    selection: Optional[Selection] = None,
    user_name: Optional[str] = None,
    friend_name: Optional[str] = None,
    rule_set_name: Optional[str] = None,
) -> str:
    """Plain-text detailed breakdown including every rule line of every player."""
    you = user_name or "My"
    lines = _header(session, selection, you, friend_name, rule_set_name)
    if breakdown.get("generated_at"):
        lines.append(f"Generated: {breakdown['generated_at']}")
    lines.append("")

    teams = breakdown.get("teams") or {}
    for title, team in ((f"{you} Team Breakdown:", "USER"), (f"{friend_name or 'Friend'} Team Breakdown:", "FRIEND")):
        lines.append(title)
        players = teams.get(team) or []
        if not players:
            lines.append("No players")
        for idx, p in enumerate(players, start=1):
            cap = " (Captain)" if p.get("is_captain") else ""
            lines.append(f"{idx}. {p.get('player_id') or 'Unknown'}{cap} - {fmt_num(p.get('total_points', 0))}")
            rule_lines = p.get("lines") or []
            if not rule_lines:
                lines.append("   (no rules applied)")
            for line in rule_lines:
                label = line.get("label") or line.get("event") or "Rule"
                lines.append(f"   - {label}: {line.get('formula') or fmt_num(line.get('points', 0))}")
        lines.append("")

    totals = breakdown.get("totals") or {}
    user_total = totals.get("user_total_points", 0)
    friend_total = totals.get("friend_total_points", 0)
    lines.extend(_footer(you, friend_name, user_total, friend_total, totals.get("total_points", user_total + friend_total)))
    return "\n".join(lines)
