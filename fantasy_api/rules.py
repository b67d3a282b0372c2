# fantasy_api/rules.py
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping

from fantasy_api.config import CAPTAIN_MULTIPLIER
from fantasy_api.models import Rule

logger = logging.getLogger(__name__)

CAPTAIN_EVENT = "captainMultiplier"

# event -> (label, stat key)
COUNT_EVENTS: Dict[str, tuple] = {
    "run": ("Runs", "runs"),
    "four": ("Fours", "fours"),
    "six": ("Sixes", "sixes"),
    "wicket": ("Wickets", "wickets"),
    "catch": ("Catches", "catches"),
    "runout": ("Runouts", "runouts"),
}

# event -> (label, stat key, threshold)
MILESTONE_EVENTS: Dict[str, tuple] = {
    "fifty": ("Fifty bonus (runs ≥ 50)", "runs", 50),
    "hundred": ("Hundred bonus (runs ≥ 100)", "runs", 100),
    "threeWicket": ("3-wicket bonus (wkts ≥ 3)", "wickets", 3),
    "fiveWicket": ("5-wicket bonus (wkts ≥ 5)", "wickets", 5),
}

KNOWN_EVENTS = set(COUNT_EVENTS) | set(MILESTONE_EVENTS) | {CAPTAIN_EVENT}


def milestone_met(event: str, stat_value: Callable[[str], float]) -> bool:
    _, stat_key, threshold = MILESTONE_EVENTS[event]
    return stat_value(stat_key) >= threshold


def _finite(value: Any, default: float) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(f):
        return default
    return int(f) if f.is_integer() else f


def sanitize_rules(raw_rules: Iterable[Any]) -> List[Rule]:
    """
    Boundary check for rule-set configuration.

    - only known events are kept
    - the first captainMultiplier wins, later ones are dropped; its multiplier
      is the fixed domain value, not user input
    - missing/non-numeric points default to 0, multiplier to 1
    """
    out: List[Rule] = []
    captain_seen = False

    for r in raw_rules or []:
        if isinstance(r, Rule):
            r = {"event": r.event, "points": r.points, "multiplier": r.multiplier, "enabled": r.enabled}
        if not isinstance(r, Mapping):
            continue

        event = str(r.get("event") or "").strip()
        if event not in KNOWN_EVENTS:
            if event:
                logger.warning("Dropping rule with unknown event %r", event)
            continue

        enabled = r.get("enabled") is not False
        if event == CAPTAIN_EVENT:
            if captain_seen:
                logger.warning("Dropping duplicate %s rule", CAPTAIN_EVENT)
                continue
            captain_seen = True
            out.append(Rule(event=CAPTAIN_EVENT, points=0, multiplier=_finite(CAPTAIN_MULTIPLIER, 2), enabled=enabled))
            continue

        out.append(
            Rule(
                event=event,
                points=_finite(r.get("points"), 0),
                multiplier=_finite(r.get("multiplier", 1), 1),
                enabled=enabled,
            )
        )

    return out


def captain_enabled(rules: Iterable[Rule]) -> bool:
    return any(r.event == CAPTAIN_EVENT and r.enabled for r in rules or [])
