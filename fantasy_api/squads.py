# fantasy_api/squads.py
from __future__ import annotations

import logging
import re
from typing import List, Optional

from fantasy_api.cache import CacheLayer
from fantasy_api.config import CRICBUZZ_BASE_URL, SCRAPER_DELAY_SECONDS
from fantasy_api.fetcher import PageFetcher, absolute_url, pause, unique_strings
from fantasy_api.match_list import MatchListScraper, extract_match_id, make_soup, normalize_whitespace
from fantasy_api.models import SquadResult

logger = logging.getLogger(__name__)

_PLAYING_XI_RE = re.compile(r"playing\s*xi", re.IGNORECASE)
_PLAYING_XI_SPLIT_RE = re.compile(r"playing\s*xi\s*[:\-]", re.IGNORECASE)
_PLAYER_SEP_RE = re.compile(r",|•|\||\r?\n")

# Fewer names than this after a "Playing XI:" label is not a real line-up
MIN_PLAYING_XI_NAMES = 8


def unique_names(values: List[str]) -> List[str]:
    return unique_strings(normalize_whitespace(v) for v in values)


def split_players_list(value: str) -> List[str]:
    if not value:
        return []
    return unique_names(_PLAYER_SEP_RE.split(str(value)))


def extract_playing_xi(page_text: str) -> List[str]:
    """Names from every 'Playing XI: a, b, c…' line carrying at least 8 names."""
    lines = unique_names(str(page_text or "").splitlines())
    players: List[str] = []
    for line in lines:
        if not _PLAYING_XI_RE.search(line):
            continue
        parts = _PLAYING_XI_SPLIT_RE.split(line, maxsplit=1)
        if len(parts) < 2:
            continue
        names = split_players_list(parts[1])
        if len(names) >= MIN_PLAYING_XI_NAMES:
            players.extend(names)
    return unique_names(players)


def extract_profile_names(soup) -> List[str]:
    names = []
    for a in soup.find_all("a", href=re.compile(r"/profiles/")):
        name = normalize_whitespace(a.get_text(" "))
        if 3 <= len(name) <= 40:
            names.append(name)
    return unique_names(names)


def squad_url_candidates(match_url: str, match_id: Optional[str], base_url: str = CRICBUZZ_BASE_URL) -> List[str]:
    base = str(match_url)
    root = base_url.rstrip("/")
    urls = [base]
    if "/live-cricket-scores/" in base:
        urls.append(base.replace("/live-cricket-scores/", "/cricket-scores/"))
        urls.append(f"{base.rstrip('/')}/scorecard")
        urls.append(f"{base.rstrip('/')}/squads")
    if match_id:
        urls.extend(
            [
                f"{root}/cricket-scores/{match_id}",
                f"{root}/cricket-scores/{match_id}/scorecard",
                f"{root}/live-cricket-scores/{match_id}",
                f"{root}/live-cricket-scores/{match_id}/scorecard",
            ]
        )
    return unique_strings(urls)


class SquadResolver:
    """Playing XI / squad player names for a match listed on the live or upcoming pages."""

    def __init__(
        self,
        fetcher: PageFetcher,
        cache: CacheLayer,
        match_lists: MatchListScraper,
        base_url: str = CRICBUZZ_BASE_URL,
        delay_seconds: float = SCRAPER_DELAY_SECONDS,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.match_lists = match_lists
        self.base_url = base_url
        self.delay_seconds = delay_seconds

    def resolve_squad(self, match_id: str) -> Optional[SquadResult]:
        mid = str(match_id or "").strip()
        if not mid:
            return None

        cached = self.cache.get("squads", mid)
        if cached is not None:
            return cached

        match = self.match_lists.find_match(mid)
        if match is None or not match.source_url:
            logger.info("Match %s not present in cached listings; cannot locate squads", mid)
            return None

        data = self.scrape_squads_from_match_url(match.source_url)
        if data is None:
            return None

        data.match_id = mid
        data.match_name = match.match_name
        data.teams = list(match.teams)

        self.cache.set("squads", mid, data)
        return data

    def scrape_squads_from_match_url(self, match_url: str) -> Optional[SquadResult]:
        pause(self.delay_seconds)

        match_id = extract_match_id(match_url)
        candidates = squad_url_candidates(match_url, match_id, self.base_url)

        match_html = self.fetcher.fetch(match_url, f"match_page_{match_id or 'x'}")
        if not match_html:
            return None

        # A scorecard link on the match page itself is the most stable source
        match_soup = make_soup(match_html)
        scorecard_url = None
        for a in match_soup.find_all("a", href=True):
            href = a.get("href")
            text = normalize_whitespace(a.get_text(" "))
            if re.search(r"scorecard", text, re.IGNORECASE) and str(match_id or "") in href:
                scorecard_url = absolute_url(href, self.base_url)
                break

        if scorecard_url:
            fetched_url, html = self.fetcher.fetch_first_working(
                [scorecard_url] + candidates, f"squads_{match_id or 'x'}"
            )
        else:
            # The match page is the first candidate and it already loaded
            fetched_url, html = match_url, match_html
        if not html:
            return None

        soup = make_soup(html)
        body = soup.body or soup
        playing_xi = extract_playing_xi(body.get_text())
        profile_names = extract_profile_names(soup)

        players = unique_names(playing_xi + profile_names)
        if not players:
            logger.warning("No squad names found on %s", fetched_url)

        return SquadResult(
            match_id=match_id or "",
            match_url=match_url,
            players=players,
            playing_xi=playing_xi,
            source_url=fetched_url,
        )
