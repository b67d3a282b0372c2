"""Tests for squad / Playing XI resolution."""

from __future__ import annotations

from fantasy_api.cache import CacheLayer
from fantasy_api.config import LIVE_SCORES_PATH
from fantasy_api.match_list import MatchListScraper, make_soup
from fantasy_api.squads import (
    SquadResolver,
    extract_playing_xi,
    extract_profile_names,
    split_players_list,
    squad_url_candidates,
)

LISTING_HTML = """
<html><body>
  <div class="card">
    <a class="ds-no-tap-higlight" href="/live-cricket-scores/101/ind-vs-aus-1st-t20i">India vs Australia</a>
    <div>1st T20I, Sydney</div>
    <div>LIVE</div>
  </div>
</body></html>
"""

INDIA_XI = (
    "Rohit Sharma, Shubman Gill, Virat Kohli, Shreyas Iyer, KL Rahul, Hardik Pandya, "
    "Ravindra Jadeja, Kuldeep Yadav, Jasprit Bumrah, Mohammed Siraj, Arshdeep Singh"
)

MATCH_PAGE_HTML = f"""
<html><body>
<p>India Playing XI: {INDIA_XI}</p>
<p>Australia Playing XI: TBC</p>
<div>
<a href="/profiles/1413/virat-kohli">Virat Kohli</a>
<a href="/profiles/8095/pat-cummins">Pat  Cummins</a>
<a href="/profiles/1/x">X</a>
</div>
</body></html>
"""

MATCH_PAGE_WITH_SCORECARD_LINK = """
<html><body>
<a href="/live-cricket-scorecard/101/ind-vs-aus-1st-t20i">Scorecard</a>
<p>Commentary only</p>
</body></html>
"""

SCORECARD_PAGE_HTML = """
<html><body>
<a href="/profiles/8095/pat-cummins">Pat Cummins</a>
<a href="/profiles/2250/steven-smith">Steven Smith</a>
</body></html>
"""

MATCH_URL = "/live-cricket-scores/101/ind-vs-aus-1st-t20i"


def _resolver(fetcher, base_url):
    cache = CacheLayer({"squads": 300, "match_list": 60})
    lists = MatchListScraper(fetcher, cache, base_url, delay_seconds=0, enrich_delay_seconds=0)
    return SquadResolver(fetcher, cache, lists, base_url, delay_seconds=0)


def test_extract_playing_xi_requires_eight_names() -> None:
    text = f"Header\nIndia Playing XI: {INDIA_XI}\nAustralia Playing XI: TBC\n"
    names = extract_playing_xi(text)
    assert len(names) == 11
    assert names[0] == "Rohit Sharma"
    assert extract_playing_xi("Playing XI: A, B, C") == []


def test_split_players_list_separators_and_dedup() -> None:
    assert split_players_list("A One • B  Two | C Three, A One\nD Four") == ["A One", "B Two", "C Three", "D Four"]
    assert split_players_list("") == []


def test_extract_profile_names_filters_length() -> None:
    soup = make_soup(MATCH_PAGE_HTML)
    assert extract_profile_names(soup) == ["Virat Kohli", "Pat Cummins"]


def test_squad_url_candidates(base_url) -> None:
    urls = squad_url_candidates(base_url + MATCH_URL, "101", base_url)
    assert urls[0] == base_url + MATCH_URL
    assert base_url + "/cricket-scores/101/ind-vs-aus-1st-t20i" in urls
    assert f"{base_url}/live-cricket-scores/101/scorecard" in urls
    assert len(urls) == len(set(urls))


def test_resolve_squad_from_match_page(fake_fetcher, base_url) -> None:
    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = LISTING_HTML
    fake_fetcher.pages[base_url + MATCH_URL] = MATCH_PAGE_HTML
    resolver = _resolver(fake_fetcher, base_url)

    squad = resolver.resolve_squad("101")
    assert squad is not None
    assert squad.match_id == "101"
    assert squad.match_name
    assert [t.name for t in squad.teams] == ["India", "Australia"]
    assert len(squad.playing_xi) == 11
    # Union: Playing XI first, then profile names not already present
    assert squad.players == squad.playing_xi + ["Pat Cummins"]
    assert squad.source_url == base_url + MATCH_URL

    # Cached: no further match-page fetch
    resolver.resolve_squad("101")
    assert fake_fetcher.calls.count(base_url + MATCH_URL) == 1


def test_resolve_squad_follows_scorecard_link(fake_fetcher, base_url) -> None:
    scorecard_url = base_url + "/live-cricket-scorecard/101/ind-vs-aus-1st-t20i"
    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = LISTING_HTML
    fake_fetcher.pages[base_url + MATCH_URL] = MATCH_PAGE_WITH_SCORECARD_LINK
    fake_fetcher.pages[scorecard_url] = SCORECARD_PAGE_HTML
    resolver = _resolver(fake_fetcher, base_url)

    squad = resolver.resolve_squad("101")
    assert squad is not None
    assert squad.source_url == scorecard_url
    assert squad.playing_xi == []
    assert squad.players == ["Pat Cummins", "Steven Smith"]


def test_resolve_squad_unknown_match(fake_fetcher, base_url) -> None:
    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = LISTING_HTML
    resolver = _resolver(fake_fetcher, base_url)

    assert resolver.resolve_squad("999") is None
    assert resolver.resolve_squad("") is None
