# fantasy_api/match_list.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Literal, Optional

from bs4 import BeautifulSoup, Tag

from fantasy_api.cache import CacheLayer
from fantasy_api.config import (
    CRICBUZZ_BASE_URL,
    FORMAT_ENRICH_DELAY_SECONDS,
    FORMAT_ENRICH_MAX,
    LIVE_SCORES_PATH,
    MATCH_LIST_DELAY_SECONDS,
    UPCOMING_PATH,
)
from fantasy_api.fetcher import PageFetcher, absolute_url, pause
from fantasy_api.models import MatchSummary, TeamRef

logger = logging.getLogger(__name__)

Listing = Literal["live", "upcoming"]

_MATCH_HREF_RE = re.compile(r"/(?:live-)?cricket-scores/(\d+)/", re.IGNORECASE)
_VS_RE = re.compile(r"\s+(?:vs\.?|v/s|v)\s+", re.IGNORECASE)

# Card vocabulary
_LIVE_LABEL_RE = re.compile(r"\bLIVE\b", re.IGNORECASE)
_IN_PROGRESS_RE = re.compile(r"opt(?:s|ed)? to (?:bat|bowl)|stumps|innings|\b\d+/\d+\b|\bov\b", re.IGNORECASE)
_RESULT_RE = re.compile(r"\bwon by\b|match drawn|match tied|match abandoned|no result", re.IGNORECASE)
_STARTED_RE = re.compile(r"opt(?:s|ed)? to (?:bat|bowl)|\bwon\b|\b\d+/\d+\b|stumps|innings|\bov\b", re.IGNORECASE)
_UPCOMING_RE = re.compile(
    r"preview|match starts|starts in|\btoday\b|\btomorrow\b|\d{1,2}:\d{2}|\b(?:am|pm)\b", re.IGNORECASE
)
_START_TIME_RE = re.compile(
    r"match starts|starts in|\btoday\b|\btomorrow\b|\d{1,2}:\d{2}|\b(?:am|pm)\b"
    r"|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\b",
    re.IGNORECASE,
)

# Embedded page JSON (quotes may be escaped inside flight strings).
# The span after an id never crosses into the next match object.
_EMBEDDED_FORMAT_RE = re.compile(
    r'"matchId"\s*:\s*(\d+)(?:(?!"matchId")[\s\S]){0,700}?"matchFormat"\s*:\s*"(T20I?|ODI|TEST)"', re.IGNORECASE
)
_EMBEDDED_START_RE = re.compile(
    r'"matchId"\s*:\s*(\d+)(?:(?!"matchId")[\s\S]){0,700}?"startDate"\s*:\s*"?(\d{10,13})', re.IGNORECASE
)

# Ordered: first hit wins
_FORMAT_PATTERNS = [
    (re.compile(r"TWENTY20|T20I?|T10|100 BALL|THE HUNDRED"), "T20"),
    (re.compile(r"LIST A|ONE[ -]DAY|50[ -]OVER|\bODI"), "ODI"),
    (re.compile(r"FIRST[ -]CLASS|\bFC\b|\b[45][ -]DAY|\bTEST\b"), "TEST"),
    # Default assumption for unlabeled internationals
    (re.compile(r"INTERNATIONAL"), "ODI"),
]

_CARD_MAX_TEXT = 600
_CARD_MAX_DEPTH = 6


def normalize_whitespace(text: Any) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()


def extract_match_id(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    m = _MATCH_HREF_RE.search(str(value))
    return m.group(1) if m else None


def is_match_href(href: Optional[str]) -> bool:
    # Match pages carry a numeric id in the path
    return extract_match_id(href) is not None


def parse_match_type(text: Optional[str]) -> Optional[str]:
    """Keyword inference of T20 / ODI / TEST from free text."""
    if not text:
        return None
    t = str(text).upper()
    for pattern, fmt in _FORMAT_PATTERNS:
        if pattern.search(t):
            return fmt
    return None


def _unescape_quotes(html: str) -> str:
    return str(html or "").replace('\\"', '"')


def scan_embedded_formats(html: str) -> Dict[str, str]:
    """matchId -> format, from JSON blobs embedded in a page (first occurrence wins)."""
    out: Dict[str, str] = {}
    for m in _EMBEDDED_FORMAT_RE.finditer(_unescape_quotes(html)):
        fmt = parse_match_type(m.group(2))
        if fmt:
            out.setdefault(m.group(1), fmt)
    return out


def scan_embedded_start_times(html: str) -> Dict[str, str]:
    """matchId -> startDate (epoch ms as text), from embedded JSON."""
    out: Dict[str, str] = {}
    for m in _EMBEDDED_START_RE.finditer(_unescape_quotes(html)):
        out.setdefault(m.group(1), m.group(2))
    return out


def extract_format_from_html(html: str) -> Optional[str]:
    if not html:
        return None
    upper = _unescape_quotes(html).upper()

    # Explicit JSON keys first (scripts/embedded data)
    for key in ("MATCHTYPE", "MATCHFORMAT", "FORMAT"):
        m = re.search(rf'"{key}"\s*:\s*"(T20I?|ODI|TEST)"', upper)
        if m:
            return parse_match_type(m.group(1))

    # Labels in page text
    m = re.search(r"MATCH\s*TYPE\s*[:\-]?\s*(T20I?|ODI|TEST)", upper) or re.search(
        r"FORMAT\s*[:\-]?\s*(T20I?|ODI|TEST)", upper
    )
    if m:
        return parse_match_type(m.group(1))

    m = re.search(r"\b(T20I?|ODI|TEST)\b", upper)
    if m:
        return parse_match_type(m.group(1))

    return None


def make_soup(html: str) -> BeautifulSoup:
    """Parse HTML and drop script/style/noscript so text extraction sees only visible text."""
    soup = BeautifulSoup(html or "", "html.parser")
    for t in soup(["script", "style", "noscript"]):
        t.decompose()
    return soup


def text_lines(el: Tag) -> List[str]:
    """Visible text of `el`, one normalized line per text node, consecutive duplicates removed."""
    lines = [normalize_whitespace(s) for s in el.stripped_strings]
    lines = [l for l in lines if l]
    return [line for idx, line in enumerate(lines) if idx == 0 or line != lines[idx - 1]]


def is_likely_team_name(line: str) -> bool:
    if not line:
        return False
    if len(line) < 2 or len(line) > 40:
        return False
    if not re.search(r"[A-Za-z]", line):
        return False
    if re.search(r"\b(LIVE|TODAY|RESULT|SCORECARD|PREVIEW)\b", line, re.IGNORECASE):
        return False
    if re.search(r"match starts|starts in|scheduled|today,|tomorrow,|mins|\bov\b|\d", line, re.IGNORECASE):
        return False
    if re.search(r"see all", line, re.IGNORECASE):
        return False
    return True


def _match_ids_under(el: Tag) -> set:
    ids = set()
    for a in el.find_all("a", href=True):
        mid = extract_match_id(a.get("href"))
        if mid:
            ids.add(mid)
    return ids


def pick_card_container(anchor: Tag) -> Optional[Tag]:
    """
    Walk up from a match link until an ancestor looks like a single match card:
    bounded text length and exactly one match linked beneath it.
    """
    for depth, parent in enumerate(anchor.parents):
        if depth >= _CARD_MAX_DEPTH:
            break
        text = normalize_whitespace(parent.get_text(" "))
        if 0 < len(text) <= _CARD_MAX_TEXT and len(_match_ids_under(parent)) == 1:
            return parent
    return None


def _clean_team(value: str) -> str:
    v = normalize_whitespace(value)
    for sep in (" - ", " – ", " — ", ","):
        v = v.split(sep)[0]
    return v.strip()


def split_teams(raw_text: str, lines: List[str]) -> Optional[tuple]:
    vs_line = next((l for l in [raw_text, *lines] if l and _VS_RE.search(l)), None)
    if vs_line:
        parts = _VS_RE.split(vs_line, maxsplit=1)
        team1, team2 = _clean_team(parts[0]), _clean_team(parts[1])
        if team1 and team2:
            return team1, team2

    candidates = [l for l in lines if is_likely_team_name(l)]
    if len(candidates) >= 2:
        return candidates[0], candidates[1]
    return None


def parse_match_card(anchor: Tag, base_url: str = CRICBUZZ_BASE_URL) -> Dict[str, Any]:
    href = anchor.get("href") or ""
    raw_text = normalize_whitespace(anchor.get_text(" "))

    # Surrounding card gives LIVE / start-time context; never a multi-match container
    container = pick_card_container(anchor)
    context_text = normalize_whitespace(container.get_text(" ")) if container is not None else raw_text
    lines = text_lines(container if container is not None else anchor)

    start_time_text = next((l for l in lines if _START_TIME_RE.search(l)), None)
    teams = split_teams(raw_text, lines)
    team_names = list(teams) if teams else []

    match_name = next(
        (l for l in lines if l not in team_names and l != "LIVE" and l != start_time_text and len(l) > 2),
        None,
    )
    if not match_name and teams:
        match_name = f"{teams[0]} vs {teams[1]}"
    if not match_name:
        match_name = raw_text or None

    return {
        "match_url": absolute_url(href, base_url),
        "match_name": match_name,
        "teams": teams,
        "start_time_text": start_time_text,
        "context_text": context_text,
        "lines": lines,
        "raw_text": raw_text,
    }


def card_status(card: Dict[str, Any], listing: Listing) -> Optional[str]:
    """
    Status for a parsed card, or None when the card does not belong in the listing.

    live listing: COMPLETED / LIVE / TODAY
    upcoming listing: UPCOMING, only for cards that look not yet started
    """
    text = card["context_text"]
    if listing == "upcoming":
        if _STARTED_RE.search(text) or not _UPCOMING_RE.search(text):
            return None
        return "UPCOMING"

    if _RESULT_RE.search(text):
        return "COMPLETED"
    if any(l.upper() == "LIVE" for l in card["lines"]) or _LIVE_LABEL_RE.search(text) or _IN_PROGRESS_RE.search(text):
        return "LIVE"
    return "TODAY"


def _select_match_anchors(soup: BeautifulSoup) -> List[Tag]:
    # Cricbuzz card anchors (the class name has shipped with and without the typo)
    for cls in ("ds-no-tap-higlight", "ds-no-tap-highlight"):
        anchors = soup.find_all("a", class_=cls)
        if anchors:
            return anchors
    return soup.find_all("a", href=_MATCH_HREF_RE)


def parse_listing_page(html: str, listing: Listing = "live", base_url: str = CRICBUZZ_BASE_URL) -> List[MatchSummary]:
    """
    Turn a listing page into MatchSummary entries, deduplicated by match id
    (first card wins). Entries without a resolvable id are dropped.

    Format here comes from (1) embedded per-match JSON, then (2) card keywords;
    the cached / detail-page fallbacks are applied by MatchListScraper.
    """
    if not html:
        return []

    formats = scan_embedded_formats(html)
    start_times = scan_embedded_start_times(html)
    soup = make_soup(html)

    matches: List[MatchSummary] = []
    seen = set()

    for a in _select_match_anchors(soup):
        href = a.get("href") or ""
        match_id = extract_match_id(href)
        if not match_id or match_id in seen:
            continue

        card = parse_match_card(a, base_url)
        if len(card["raw_text"]) < 3:
            continue

        status = card_status(card, listing)
        if status is None:
            continue

        match_type = formats.get(match_id) or parse_match_type(
            " ".join(filter(None, [card["context_text"], card["match_name"], card["match_url"]]))
        )
        teams = [TeamRef(name=t) for t in card["teams"]] if card["teams"] else []

        seen.add(match_id)
        matches.append(
            MatchSummary(
                match_id=match_id,
                source_url=card["match_url"],
                match_status=status,
                match_name=card["match_name"],
                teams=teams,
                match_type=match_type,
                start_time=start_times.get(match_id) or card["start_time_text"],
            )
        )

    return matches


class MatchListScraper:
    """
    Cached live/today and upcoming match listings, plus per-match format
    lookups. One instance per CacheLayer/PageFetcher pair.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        cache: CacheLayer,
        base_url: str = CRICBUZZ_BASE_URL,
        delay_seconds: float = MATCH_LIST_DELAY_SECONDS,
        enrich_max: int = FORMAT_ENRICH_MAX,
        enrich_delay_seconds: float = FORMAT_ENRICH_DELAY_SECONDS,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.delay_seconds = delay_seconds
        self.enrich_max = enrich_max
        self.enrich_delay_seconds = enrich_delay_seconds

    # -----------------------
    # Listings
    # -----------------------
    def list_live_and_today(self, use_cache: bool = True) -> List[MatchSummary]:
        return self._list("live", [self.base_url + LIVE_SCORES_PATH], use_cache)

    def list_upcoming(self, use_cache: bool = True) -> List[MatchSummary]:
        urls = [
            self.base_url + UPCOMING_PATH,
            self.base_url + UPCOMING_PATH + "/all",
            # Live-scores page also lists not-yet-started fixtures
            self.base_url + LIVE_SCORES_PATH,
        ]
        return self._list("upcoming", urls, use_cache)

    def _list(self, listing: Listing, urls: List[str], use_cache: bool) -> List[MatchSummary]:
        if use_cache:
            cached = self.cache.get("match_list", listing)
            if cached is not None:
                return cached

        pause(self.delay_seconds)
        url, html = self.fetcher.fetch_first_working(urls, f"listing_{listing}")
        if not html:
            logger.warning("Failed to fetch %s listing (all candidates)", listing)
            return []

        matches = parse_listing_page(html, listing, self.base_url)
        if not matches:
            logger.warning("No matches found on %s (%s listing); DOM may have changed", url, listing)
            return []

        self.fill_formats(matches)
        logger.info("%s listing: %d matches from %s", listing, len(matches), url)
        self.cache.set("match_list", listing, matches)
        return matches

    # -----------------------
    # Formats
    # -----------------------
    def fill_formats(self, matches: List[MatchSummary]) -> None:
        """Cached per-URL formats first, then a capped, throttled number of detail-page lookups."""
        for m in matches:
            if m.match_type:
                continue
            cached = self.cache.get("match_format", m.source_url)
            if cached:
                m.match_type = cached

        processed = 0
        for m in matches:
            if processed >= self.enrich_max:
                break
            if m.match_type or not m.source_url:
                continue
            pause(self.enrich_delay_seconds)
            fmt = self.scrape_match_format(m.source_url)
            if fmt:
                m.match_type = fmt
            processed += 1

    def scrape_match_format(self, match_url: str) -> Optional[str]:
        url = absolute_url(match_url, self.base_url)
        if not url:
            return None

        cached = self.cache.get("match_format", url)
        if cached:
            return cached

        html = self.fetcher.fetch(url, "match_format")
        if not html:
            return None

        # Prefer the format recorded for THIS match id (other matches may be embedded too)
        match_id = extract_match_id(url)
        fmt = scan_embedded_formats(html).get(match_id) if match_id else None

        if not fmt:
            fmt = extract_format_from_html(html)
        if not fmt:
            soup = make_soup(html)
            parts = [soup.title.get_text() if soup.title else ""]
            for attrs in ({"name": "description"}, {"property": "og:description"}):
                meta = soup.find("meta", attrs=attrs)
                if meta is not None:
                    parts.append(meta.get("content") or "")
            parts.append(soup.get_text(" "))
            fmt = parse_match_type(normalize_whitespace(" ".join(parts)))

        if fmt:
            self.cache.set("match_format", url, fmt)
        return fmt

    # -----------------------
    # Lookups by id
    # -----------------------
    def find_match(self, match_id: str) -> Optional[MatchSummary]:
        mid = str(match_id or "").strip()
        if not mid:
            return None
        for m in self.list_live_and_today() + self.list_upcoming():
            if m.match_id == mid:
                return m
        return None

    def match_state(self, match_id: str) -> str:
        """LIVE / TODAY / COMPLETED from the live listing, UPCOMING, or UNKNOWN."""
        mid = str(match_id or "").strip()
        if not mid:
            return "UNKNOWN"

        for m in self.list_live_and_today():
            if m.match_id == mid:
                return m.match_status
        for m in self.list_upcoming():
            if m.match_id == mid:
                return "UPCOMING"
        return "UNKNOWN"
