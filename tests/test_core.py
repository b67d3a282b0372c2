"""Tests for FantasyCore wiring: manual raw-stats entry."""

from __future__ import annotations

import pytest

from fantasy_api.core import FantasyCore
from fantasy_api.errors import NotFound
from fantasy_api.models import PlayerStatRecord

from conftest import FakeFetcher


@pytest.fixture
def core(stores) -> FantasyCore:
    return FantasyCore(
        fetcher=FakeFetcher(),
        sessions=stores.sessions,
        stats=stores.stats,
        breakdowns=stores.breakdowns,
        scraper_delay_seconds=0,
    )


def test_upsert_raw_stats_feeds_the_next_calculation(core, stores) -> None:
    first = core.calculate_session_points("s1")
    assert first.total_points == 0
    assert len(stores.breakdowns.list_rows("s1")) == 12

    stored = core.upsert_raw_stats(
        "s1",
        [
            {"player_id": "Rohit Sharma", "runs": 50, "fours": 4, "sixes": 1},
            {"playerId": "Pat Cummins", "wickets": 2, "catches": 1},
            {"player_id": "  ", "runs": 99},
        ],
    )

    assert {s.player_id for s in stored} == {"Rohit Sharma", "Pat Cummins"}
    # points rows are dropped so calculation is not short-circuited
    assert stores.breakdowns.list_rows("s1") == []

    again = core.calculate_session_points("s1")
    assert again.already_calculated is False
    assert again.user_total_points == 132
    assert again.friend_total_points == 116


def test_upsert_replaces_counts_per_player(core) -> None:
    core.upsert_raw_stats("s1", [{"player_id": "Virat Kohli", "runs": 10}])
    core.upsert_raw_stats("s1", [{"player_id": "Virat Kohli", "runs": 31, "fours": 2}])

    assert core.list_raw_stats("s1") == [PlayerStatRecord("Virat Kohli", runs=31, fours=2)]


def test_upsert_raw_stats_rejects_bad_input(core, stores) -> None:
    with pytest.raises(ValueError, match="stats\\[\\] is required"):
        core.upsert_raw_stats("s1", [])
    with pytest.raises(ValueError, match="non-negative"):
        core.upsert_raw_stats("s1", [{"player_id": "Virat Kohli", "runs": -4}])
    with pytest.raises(ValueError, match="non-negative"):
        core.upsert_raw_stats("s1", [{"player_id": "Virat Kohli", "runs": "lots"}])
    assert stores.stats.list_stats("s1") == []

    with pytest.raises(NotFound, match="MatchSession not found"):
        core.upsert_raw_stats("missing", [{"player_id": "Virat Kohli", "runs": 1}])
    with pytest.raises(NotFound):
        core.list_raw_stats("missing")
