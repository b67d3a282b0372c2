"""Tests for listing-page parsing and the cached match list scraper."""

from __future__ import annotations

from fantasy_api.cache import CacheLayer
from fantasy_api.config import LIVE_SCORES_PATH, UPCOMING_PATH
from fantasy_api.match_list import (
    MatchListScraper,
    parse_listing_page,
    parse_match_type,
    scan_embedded_formats,
    scan_embedded_start_times,
    split_teams,
)

LIVE_HTML = """
<html>
  <head><script>window.data = {"matchId":104,"venue":"Harare","matchFormat":"ODI","startDate":"1760000000000"};</script></head>
  <body>
    <div class="matches">
      <div class="card">
        <a class="ds-no-tap-higlight" href="/live-cricket-scores/101/ind-vs-aus-1st-t20i">India vs Australia</a>
        <div>1st T20I, Sydney</div>
        <div>LIVE</div>
        <div>IND 145/3 (16.2 ov)</div>
      </div>
      <div class="card">
        <a class="ds-no-tap-higlight" href="/live-cricket-scores/102/eng-vs-nz-2nd-test">England vs New Zealand</a>
        <div>2nd Test, Lords</div>
        <div>England won by 5 wkts</div>
      </div>
      <div class="card">
        <a class="ds-no-tap-higlight" href="/live-cricket-scores/103/pak-vs-sa-3rd-odi">Pakistan vs South Africa</a>
        <div>3rd ODI, Karachi</div>
        <div>Today, 14:30</div>
      </div>
      <div class="card">
        <a class="ds-no-tap-higlight" href="/live-cricket-scores/104/zim-vs-ire-only-match">Zimbabwe vs Ireland</a>
        <div>Only match, Harare</div>
        <div>Today, 10:00</div>
      </div>
      <div class="card">
        <a class="ds-no-tap-higlight" href="/live-cricket-scores/101/ind-vs-aus-1st-t20i/scorecard">India vs Australia</a>
      </div>
      <div class="card">
        <a class="ds-no-tap-higlight" href="/cricket-series/9/some-series">Series home</a>
      </div>
    </div>
  </body>
</html>
"""

UPCOMING_HTML = """
<html>
  <body>
    <div>
      <a href="/live-cricket-scores/201/wi-vs-ban-1st-odi">West Indies vs Bangladesh</a>
      <div>1st ODI, Kingston</div>
      <div>Tomorrow, 9:30 AM</div>
    </div>
    <div>
      <a href="/live-cricket-scores/202/sl-vs-afg-only-t20i">Sri Lanka vs Afghanistan</a>
      <div>Only T20I</div>
      <div>SL 120/4 (15 ov)</div>
    </div>
  </body>
</html>
"""

NO_FORMAT_HTML = """
<html>
  <body>
    <div>
      <a href="/live-cricket-scores/301/kent-vs-essex-county">Kent vs Essex</a>
      <div>County match, Canterbury</div>
      <div>Today, 11:00</div>
    </div>
    <div>
      <a href="/live-cricket-scores/302/surrey-vs-durham-county">Surrey vs Durham</a>
      <div>County match, Oval</div>
      <div>Today, 11:00</div>
    </div>
  </body>
</html>
"""


def _by_id(matches):
    return {m.match_id: m for m in matches}


def test_parse_live_listing_statuses_teams_and_dedup(base_url) -> None:
    matches = parse_listing_page(LIVE_HTML, "live", base_url)
    by_id = _by_id(matches)

    assert [m.match_id for m in matches] == ["101", "102", "103", "104"]
    assert by_id["101"].match_status == "LIVE"
    assert by_id["102"].match_status == "COMPLETED"
    assert by_id["103"].match_status == "TODAY"

    assert [t.name for t in by_id["101"].teams] == ["India", "Australia"]
    assert by_id["101"].source_url == f"{base_url}/live-cricket-scores/101/ind-vs-aus-1st-t20i"
    assert by_id["103"].start_time == "Today, 14:30"


def test_parse_listing_format_priority(base_url) -> None:
    by_id = _by_id(parse_listing_page(LIVE_HTML, "live", base_url))

    assert by_id["101"].match_type == "T20"
    assert by_id["102"].match_type == "TEST"
    assert by_id["103"].match_type == "ODI"
    # No keywords on the card; embedded page JSON supplies format and start time
    assert by_id["104"].match_type == "ODI"
    assert by_id["104"].start_time == "1760000000000"


ADJACENT_JSON_HTML = """
<html>
  <head><script>window.data = [{"matchId":111,"seriesName":"India tour of England"},{"matchId":222,"matchFormat":"T20","startDate":"1760000000000"}];</script></head>
  <body>
    <div>
      <a href="/live-cricket-scores/111/eng-vs-ind-1st-test">England vs India</a>
      <div>1st Test, Leeds</div>
      <div>Today, 10:00</div>
    </div>
    <div>
      <a href="/live-cricket-scores/222/ire-vs-sco-only-match">Ireland vs Scotland</a>
      <div>Only match, Dublin</div>
      <div>Today, 15:00</div>
    </div>
  </body>
</html>
"""


def test_embedded_json_fields_stay_with_their_own_match(base_url) -> None:
    assert scan_embedded_formats(ADJACENT_JSON_HTML) == {"222": "T20"}
    assert scan_embedded_start_times(ADJACENT_JSON_HTML) == {"222": "1760000000000"}

    by_id = _by_id(parse_listing_page(ADJACENT_JSON_HTML, "live", base_url))
    assert by_id["111"].match_type == "TEST"
    assert by_id["111"].start_time == "Today, 10:00"
    assert by_id["222"].match_type == "T20"


def test_upcoming_listing_keeps_only_not_started(base_url) -> None:
    matches = parse_listing_page(UPCOMING_HTML, "upcoming", base_url)
    assert [m.match_id for m in matches] == ["201"]
    assert matches[0].match_status == "UPCOMING"
    assert matches[0].match_type == "ODI"


def test_sibling_links_without_card_wrappers_use_anchor_text(base_url) -> None:
    html = """
    <div>
      <a href="/live-cricket-scores/401/a-vs-b">Alpha vs Beta</a>
      <a href="/live-cricket-scores/402/c-vs-d">Gamma vs Delta</a>
    </div>
    """
    matches = parse_listing_page(html, "live", base_url)
    assert [m.match_id for m in matches] == ["401", "402"]
    assert [t.name for t in matches[1].teams] == ["Gamma", "Delta"]
    assert all(m.match_status == "TODAY" for m in matches)


def test_parse_match_type_keywords() -> None:
    assert parse_match_type("3rd T20I") == "T20"
    assert parse_match_type("One-Day Cup") == "ODI"
    assert parse_match_type("4-day first-class") == "TEST"
    assert parse_match_type("ICC International") == "ODI"
    assert parse_match_type("Warm-up") is None


def test_split_teams_fallback_to_likely_team_lines() -> None:
    assert split_teams("", ["Today, 10:00", "Mumbai", "Chennai"]) == ("Mumbai", "Chennai")
    assert split_teams("RCB v KKR - Match 5", []) == ("RCB", "KKR")
    assert split_teams("", ["LIVE", "120/3"]) is None


def test_scraper_caches_listing_and_supports_bypass(fake_fetcher, base_url) -> None:
    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = LIVE_HTML
    scraper = MatchListScraper(fake_fetcher, CacheLayer({"match_list": 60}), base_url, delay_seconds=0)

    first = scraper.list_live_and_today()
    second = scraper.list_live_and_today()
    assert len(first) == 4
    assert second is first
    assert fake_fetcher.calls == [base_url + LIVE_SCORES_PATH]

    scraper.list_live_and_today(use_cache=False)
    assert len(fake_fetcher.calls) == 2


def test_scraper_empty_listing_is_not_cached(fake_fetcher, base_url) -> None:
    scraper = MatchListScraper(fake_fetcher, CacheLayer(), base_url, delay_seconds=0)
    assert scraper.list_live_and_today() == []

    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = LIVE_HTML
    assert len(scraper.list_live_and_today()) == 4


def test_format_enrichment_is_capped_and_cached(fake_fetcher, base_url) -> None:
    detail_url = f"{base_url}/live-cricket-scores/301/kent-vs-essex-county"
    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = NO_FORMAT_HTML
    fake_fetcher.pages[detail_url] = '<html><script>{"matchId":301,"matchFormat":"TEST"}</script></html>'
    scraper = MatchListScraper(
        fake_fetcher, CacheLayer(), base_url, delay_seconds=0, enrich_max=1, enrich_delay_seconds=0
    )

    by_id = _by_id(scraper.list_live_and_today())
    assert by_id["301"].match_type == "TEST"
    assert by_id["302"].match_type is None
    assert fake_fetcher.calls.count(detail_url) == 1

    # Second pass: 301 comes from the per-URL format cache, 302 gets its lookup
    by_id = _by_id(scraper.list_live_and_today(use_cache=False))
    assert by_id["301"].match_type == "TEST"
    assert fake_fetcher.calls.count(detail_url) == 1
    assert f"{base_url}/live-cricket-scores/302/surrey-vs-durham-county" in fake_fetcher.calls


def test_match_state_and_find_match(fake_fetcher, base_url) -> None:
    fake_fetcher.pages[base_url + LIVE_SCORES_PATH] = LIVE_HTML
    fake_fetcher.pages[base_url + UPCOMING_PATH] = UPCOMING_HTML
    scraper = MatchListScraper(fake_fetcher, CacheLayer(), base_url, delay_seconds=0)

    assert scraper.match_state("101") == "LIVE"
    assert scraper.match_state("102") == "COMPLETED"
    assert scraper.match_state("201") == "UPCOMING"
    assert scraper.match_state("999") == "UNKNOWN"

    found = scraper.find_match("201")
    assert found is not None and found.match_name
    assert scraper.find_match("") is None
