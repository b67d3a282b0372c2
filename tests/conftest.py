from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from fantasy_api.fetcher import PageFetcher
from fantasy_api.models import MatchSession, Rule, RuleSet, Selection
from fantasy_api.store import BreakdownStore, SessionStore, StatsStore

BASE_URL = "https://www.cricbuzz.com"


class FakeFetcher(PageFetcher):
    """PageFetcher serving canned pages by URL; unknown URLs behave like a 404."""

    def __init__(self, pages: Optional[Dict[str, str]] = None):
        super().__init__()
        self.pages: Dict[str, str] = dict(pages or {})
        self.calls: List[str] = []

    def fetch(self, url: str, label: str = "fetch") -> Optional[str]:
        self.calls.append(url)
        self.last_url = url
        html = self.pages.get(url)
        self.last_status = 200 if html is not None else 404
        return html


def make_flight_html(field_name: str, payload: Any, noise: str = "") -> str:
    """A page carrying `payload` under `field_name` inside an escaped flight fragment."""
    fragment = f'1:["$","div",null,{{{noise}"{field_name}":{json.dumps(payload)},"other":1}}]'
    literal = json.dumps(fragment)
    return (
        "<html><head></head><body><div>page</div>"
        '<script>self.__next_f.push([0,"boot"])</script>'
        f"<script>self.__next_f.push([1,{literal}])</script>"
        "</body></html>"
    )


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def flight_html() -> Callable[..., str]:
    return make_flight_html


USER_PLAYERS = ["Rohit Sharma", "Virat Kohli", "Shubman Gill", "KL Rahul", "Hardik Pandya", "Jasprit Bumrah"]
FRIEND_PLAYERS = ["Pat Cummins", "Steven Smith", "Travis Head", "Mitchell Starc", "Glenn Maxwell", "Nobody Known"]

RULES = [
    Rule("run", 1),
    Rule("four", 1),
    Rule("six", 2),
    Rule("wicket", 25),
    Rule("catch", 8),
    Rule("fifty", 10),
    Rule("captainMultiplier", 0, 2),
]


@pytest.fixture
def stores() -> SimpleNamespace:
    """Stores seeded with one rule set, one session and a frozen selection."""
    sessions = SessionStore()
    rule_set = sessions.save_rule_set(RuleSet(rule_set_id="rs1", user_id="u1", name="Classic", rules=list(RULES)))
    session = sessions.save_session(
        MatchSession(
            session_id="s1",
            user_id="u1",
            friend_id="f1",
            rule_set_id=rule_set.rule_set_id,
            real_match_id="101",
            real_match_name="India vs Australia, 1st T20I",
            friend_name="Sam",
        )
    )
    selection = sessions.save_selection(
        Selection(
            session_id="s1",
            user_players=list(USER_PLAYERS),
            user_captain="Rohit Sharma",
            friend_players=list(FRIEND_PLAYERS),
            friend_captain="Pat Cummins",
            is_frozen=True,
        )
    )
    return SimpleNamespace(
        sessions=sessions,
        stats=StatsStore(),
        breakdowns=BreakdownStore(),
        rule_set=rule_set,
        session=session,
        selection=selection,
    )
