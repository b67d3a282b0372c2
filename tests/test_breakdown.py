"""Tests for the human-readable points breakdown."""

from __future__ import annotations

from dataclasses import replace

import pytest

from fantasy_api.breakdown import BreakdownBuilder, count_line, fmt_num, milestone_line, player_breakdown
from fantasy_api.errors import NotFound
from fantasy_api.models import PlayerStatRecord, Rule
from fantasy_api.points_engine import compute
from fantasy_api.scoring import ScoringService


def _builder(stores) -> BreakdownBuilder:
    stores.stats.upsert_stat("s1", "Rohit Sharma", PlayerStatRecord("Rohit Sharma", runs=50, fours=4, sixes=1))
    stores.stats.upsert_stat("s1", "Pat Cummins", PlayerStatRecord("Pat Cummins", wickets=2, catches=1))
    return BreakdownBuilder(stores.sessions, stores.stats)


def test_formula_rendering() -> None:
    assert fmt_num(10.0) == "10"
    assert fmt_num(2.5) == "2.5"
    assert count_line("six", 2, Rule("six", 2, 1.5))["formula"] == "2 × 2 × 1.5 = 6"
    assert count_line("run", 31, Rule("run", 1))["formula"] == "31 × 1 = 31"
    assert milestone_line("fifty", True, Rule("fifty", 10, 2))["formula"] == "10 × 2 = 20"
    assert milestone_line("fifty", True, Rule("fifty", 10))["formula"] == "10 = 10"
    missed = milestone_line("hundred", False, Rule("hundred", 25))
    assert missed["formula"] == "0 = 0"
    assert missed["points"] == 0


def test_captain_breakdown_lines_and_totals(stores) -> None:
    data = _builder(stores).build("s1")

    rohit = data["teams"]["USER"][0]
    assert rohit["player_id"] == "Rohit Sharma"
    assert rohit["is_captain"] is True
    assert [l["formula"] for l in rohit["lines"]] == [
        "50 × 1 = 50",
        "4 × 1 = 4",
        "1 × 2 = 2",
        "0 × 25 = 0",
        "0 × 8 = 0",
        "10 = 10",
        "66 × 2 = 132",
    ]
    assert [l["kind"] for l in rohit["lines"]][-2:] == ["milestone", "multiplier"]
    assert rohit["subtotal"] == 66
    assert rohit["total_points"] == 132

    assert data["totals"] == {"user_total_points": 132, "friend_total_points": 116, "total_points": 248}


def test_players_without_stats_are_zeroed(stores) -> None:
    data = _builder(stores).build("s1")
    virat = data["teams"]["USER"][1]
    assert virat["stats"]["runs"] == 0
    assert virat["total_points"] == 0
    assert all(l["kind"] != "multiplier" for l in virat["lines"])
    assert len(data["teams"]["FRIEND"]) == 6


def test_breakdown_matches_points_rows(stores) -> None:
    builder = _builder(stores)
    calc = ScoringService(stores.sessions, stores.stats, stores.breakdowns).calculate_session_points("s1")
    data = builder.build("s1")

    by_player = {r.player_id: r.total_points for r in calc.rows}
    for team in ("USER", "FRIEND"):
        for p in data["teams"][team]:
            assert p["total_points"] == by_player[p["player_id"]]


def test_breakdown_not_found(stores) -> None:
    builder = BreakdownBuilder(stores.sessions, stores.stats)
    with pytest.raises(NotFound, match="MatchSession"):
        builder.build("missing")

    stores.sessions.save_session(replace(stores.session, session_id="s2"))
    with pytest.raises(NotFound, match="PlayerSelection"):
        builder.build("s2")

    stores.sessions.save_session(replace(stores.session, rule_set_id="gone"))
    with pytest.raises(NotFound, match="RuleSet"):
        builder.build("s1")


def test_player_breakdown_totals_come_from_the_engine() -> None:
    rules = [
        Rule("run", 1),
        Rule("run", 0.5, 3),
        Rule("six", 2, enabled=False),
        Rule("hundred", 25),
        Rule("captainMultiplier", 0, 1.5),
    ]
    stats = PlayerStatRecord("Travis Head", runs=101, sixes=4)

    for is_captain in (True, False):
        data = player_breakdown("Travis Head", rules, stats, is_captain)
        assert data["total_points"] == compute(stats, rules, is_captain).total_points

    captained = player_breakdown("Travis Head", rules, stats, True)
    # 101 + 151.5 + 25 before the captain multiplier
    assert captained["subtotal"] == 277.5
    assert captained["lines"][-1]["formula"] == "277.5 × 1.5 = 416.25"
    assert [l["event"] for l in captained["lines"]] == ["run", "run", "hundred", "captainMultiplier"]
