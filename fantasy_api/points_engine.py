# fantasy_api/points_engine.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Union

from fantasy_api.models import PlayerStatRecord, PointsResult, Rule
from fantasy_api.rules import CAPTAIN_EVENT, COUNT_EVENTS, MILESTONE_EVENTS, milestone_met

StatsLike = Union[PlayerStatRecord, Mapping[str, Any], None]


def stat_getter(stats: StatsLike):
    """Uniform numeric access to a PlayerStatRecord or a plain stats mapping (missing -> 0)."""

    def get(key: str) -> float:
        if stats is None:
            return 0
        if isinstance(stats, Mapping):
            v = stats.get(key, 0)
        else:
            v = getattr(stats, key, 0)
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 0
        return v

    return get


def compute(raw_stats: StatsLike, rules: Iterable[Rule], is_captain: bool) -> PointsResult:
    """
    Points for ONE player.

    Enabled rules are applied in rule-set order:
      count event:     count * points * multiplier
      milestone event: points * multiplier when met, else 0

    The captain multiplier is applied last, to the SUM of every other
    contribution, and only for the captain. Disabled rules are absent
    from per_rule.
    """
    stat = stat_getter(raw_stats)
    per_rule: Dict[str, Any] = {}
    total: float = 0
    captain_rule: Optional[Rule] = None

    for rule in rules or []:
        if rule is None or not rule.enabled:
            continue

        event = rule.event
        if event == CAPTAIN_EVENT:
            if captain_rule is None:
                captain_rule = rule
            continue

        if event in COUNT_EVENTS:
            _, stat_key = COUNT_EVENTS[event]
            contribution = stat(stat_key) * rule.points * rule.multiplier
        elif event in MILESTONE_EVENTS:
            contribution = rule.points * rule.multiplier if milestone_met(event, stat) else 0
        else:
            continue

        per_rule[event] = contribution
        total += contribution

    if is_captain and captain_rule is not None:
        before = total
        total = before * captain_rule.multiplier
        per_rule[CAPTAIN_EVENT] = {
            "multiplier": captain_rule.multiplier,
            "before": before,
            "after": total,
        }

    return PointsResult(total_points=total, per_rule=per_rule)
