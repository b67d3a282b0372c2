# fantasy_api/name_matcher.py
"""
Mapping of a selected player token onto scraped scorecard stats.

Matching is layered and deliberately conservative:
  1) token is a scorecard player id with stats
  2) exact match on the normalized display name
  3) substring containment (either direction) on normalized names

There is no edit-distance fallback: "A Sharma" and "R Sharma" must never be
merged, and an unmatched player scoring zero is preferable to a wrong player.
"""
from __future__ import annotations

import re
from typing import Dict, Optional

from fantasy_api.models import PlayerStatRecord, ScorecardExtract

# Shorter normalized tokens are too ambiguous for containment matching
MIN_FUZZY_LENGTH = 3


def normalize_player_key(value: Optional[str]) -> str:
    s = str(value or "")
    s = re.sub(r"[†*]", "", s)  # † keeper mark, * not-out mark
    s = re.sub(r"\([^)]*\)", "", s)  # (c), (wk), (sub)…
    s = re.sub(r"[.'’]", "", s)
    s = re.sub(r"[,\-_/]", " ", s)
    s = re.sub(r"\s+", " ", s)
    return s.strip().lower()


def build_name_index(extract: ScorecardExtract) -> Dict[str, str]:
    """normalized name -> player id, only for ids that have stats; first name wins."""
    index: Dict[str, str] = {}
    for pid, name in extract.player_name_by_id.items():
        if str(pid) not in extract.player_stats_by_id:
            continue
        key = normalize_player_key(name)
        if key and key not in index:
            index[key] = str(pid)
    return index


class NameMatcher:
    def __init__(self, extract: ScorecardExtract):
        self.extract = extract
        self.stats_by_id = extract.player_stats_by_id
        self.index = build_name_index(extract)

    def resolve(self, token: Optional[str]) -> Optional[PlayerStatRecord]:
        sel = str(token or "").strip()
        if not sel:
            return None

        direct = self.stats_by_id.get(sel)
        if direct is not None:
            return direct

        key = normalize_player_key(sel)
        if not key:
            return None

        pid = self.index.get(key)
        if pid is not None:
            return self.stats_by_id.get(pid)

        if len(key) < MIN_FUZZY_LENGTH:
            return None
        for name, pid in self.index.items():
            if len(name) < MIN_FUZZY_LENGTH:
                continue
            if key in name or name in key:
                return self.stats_by_id.get(pid)

        return None


def resolve_player(token: Optional[str], extract: ScorecardExtract) -> Optional[PlayerStatRecord]:
    return NameMatcher(extract).resolve(token)
