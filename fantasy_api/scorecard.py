# fantasy_api/scorecard.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional

from fantasy_api.cache import CacheLayer
from fantasy_api.config import CRICBUZZ_BASE_URL, SCRAPER_DELAY_SECONDS
from fantasy_api.fetcher import PageFetcher, pause
from fantasy_api.flight import extract_named_json
from fantasy_api.match_list import normalize_whitespace
from fantasy_api.models import PlayerStatRecord, ScorecardExtract

logger = logging.getLogger(__name__)

SCORECARD_FIELD = "scorecardApiData"

# Guard against pathological payloads when harvesting names
_MAX_WALK_NODES = 200_000

# (id key, name keys in preference order)
_ID_NAME_SHAPES = [
    ("batId", ("batName",)),
    ("bowlerId", ("bowlerName", "bowlName")),
    ("playerId", ("playerName",)),
    ("id", ("name",)),
]


def _to_int(v: Any) -> int:
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    try:
        return int(float(str(v).strip()))
    except (TypeError, ValueError):
        return 0


def _walk(obj: Any) -> Iterator[Dict[str, Any]]:
    """Generic JSON walker that yields dict nodes (pre-order)."""
    if isinstance(obj, dict):
        yield obj
        for v in obj.values():
            yield from _walk(v)
    elif isinstance(obj, list):
        for v in obj:
            yield from _walk(v)


def _is_numeric_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    return isinstance(value, str) and value.strip().isdigit()


def collect_player_names(root: Any) -> Dict[str, str]:
    """Every (numeric id, display name) pair in the payload; first seen wins."""
    names: Dict[str, str] = {}
    for count, node in enumerate(_walk(root)):
        if count >= _MAX_WALK_NODES:
            break
        for id_key, name_keys in _ID_NAME_SHAPES:
            pid = node.get(id_key)
            if not _is_numeric_id(pid):
                continue
            name = next((node[k] for k in name_keys if isinstance(node.get(k), str) and node[k].strip()), None)
            if not name:
                continue
            key = str(pid).strip()
            if key not in names:
                names[key] = normalize_whitespace(name)
    return names


def _is_catch(code: Any) -> bool:
    return "CAUGHT" in str(code or "").upper()


def _is_runout(code: Any) -> bool:
    return "RUNOUT" in str(code or "").upper()


def _values(section: Any) -> List[Mapping[str, Any]]:
    """Batting/bowling sections are keyed objects ("bat_1": {...}) or plain lists."""
    if isinstance(section, dict):
        items = section.values()
    elif isinstance(section, list):
        items = section
    else:
        return []
    return [x for x in items if isinstance(x, dict)]


def fold_innings(innings_list: List[Any]) -> Dict[str, PlayerStatRecord]:
    """
    Fold per-innings scorecard entries into per-player totals.

    - batting: runs / fours / sixes accumulate across innings
    - CAUGHT dismissals credit fielderId1 with a catch
    - RUNOUT dismissals credit fielderId1 and, if different, fielderId2
      (fielder order is taken as recorded; a known approximation)
    - bowling: wickets accumulate
    """
    totals: Dict[str, PlayerStatRecord] = {}

    def bump(player_id: Any, **deltas: int) -> None:
        pid = str(player_id or "").strip()
        if not pid or pid == "0":
            return
        prev = totals.get(pid) or PlayerStatRecord.zero(pid)
        totals[pid] = prev.plus(**deltas)

    for innings in innings_list or []:
        if not isinstance(innings, dict):
            continue

        batting = (innings.get("batTeamDetails") or {}).get("batsmenData")
        for b in _values(batting):
            if not b.get("batId"):
                continue
            bump(b["batId"], runs=_to_int(b.get("runs")), fours=_to_int(b.get("fours")), sixes=_to_int(b.get("sixes")))

            f1 = _to_int(b.get("fielderId1"))
            f2 = _to_int(b.get("fielderId2"))
            code = b.get("wicketCode")
            if _is_catch(code):
                if f1 > 0:
                    bump(f1, catches=1)
            elif _is_runout(code):
                if f1 > 0:
                    bump(f1, runouts=1)
                if f2 > 0 and f2 != f1:
                    bump(f2, runouts=1)

        bowling = (innings.get("bowlTeamDetails") or {}).get("bowlersData")
        for bw in _values(bowling):
            if not bw.get("bowlerId"):
                continue
            bump(bw["bowlerId"], wickets=_to_int(bw.get("wickets")))

    return totals


def parse_scorecard_payload(payload: Any, match_id: str, source_url: Optional[str] = None) -> Optional[ScorecardExtract]:
    """ScorecardExtract from a decoded scorecardApiData object, or None if it has no scoreCard list."""
    if not isinstance(payload, dict) or not isinstance(payload.get("scoreCard"), list):
        return None

    header = payload.get("matchHeader")
    return ScorecardExtract(
        match_id=str(match_id),
        player_stats_by_id=fold_innings(payload["scoreCard"]),
        player_name_by_id=collect_player_names(payload),
        source_url=source_url,
        match_header=header if isinstance(header, dict) else None,
    )


class ScorecardStatsExtractor:
    """Per-player counting stats for a match, scraped from the embedded scorecard JSON."""

    def __init__(
        self,
        fetcher: PageFetcher,
        cache: CacheLayer,
        base_url: str = CRICBUZZ_BASE_URL,
        delay_seconds: float = SCRAPER_DELAY_SECONDS,
    ):
        self.fetcher = fetcher
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.delay_seconds = delay_seconds

    def scorecard_urls(self, match_id: str) -> List[str]:
        return [
            # Carries scorecard JSON in the server-rendered flight payload
            f"{self.base_url}/live-cricket-scorecard/{match_id}",
            # May render commentary-first without the scorecard JSON
            f"{self.base_url}/live-cricket-scores/{match_id}/scorecard",
            f"{self.base_url}/cricket-scores/{match_id}/scorecard",
        ]

    def extract_stats(self, match_id: str, use_cache: bool = True) -> Optional[ScorecardExtract]:
        mid = str(match_id or "").strip()
        if not mid:
            return None

        if use_cache:
            cached = self.cache.get("scorecard", mid)
            if cached is not None:
                return cached

        pause(self.delay_seconds)
        data = None
        for url in self.scorecard_urls(mid):
            html = self.fetcher.fetch(url, f"scorecard_{mid}")
            if not html:
                continue
            data = parse_scorecard_payload(extract_named_json(html, SCORECARD_FIELD), mid, url)
            if data is not None:
                break
            logger.warning("%s.scoreCard not found on %s", SCORECARD_FIELD, url)

        if data is None:
            return None

        logger.info(
            "Scorecard %s: %d players with stats, %d names",
            mid,
            len(data.player_stats_by_id),
            len(data.player_name_by_id),
        )
        self.cache.set("scorecard", mid, data)
        return data
