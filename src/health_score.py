"""
Health Score
============
A 0-100 composite of five component scores over the last 7 days, plus a
recovery trend against the 23 days before that.

  overall = round(0.25·sleep + 0.25·recovery + 0.20·consistency
                  + 0.15·nutrition + 0.15·stress)

Components are rounded to whole numbers first, so ``overall`` is always
the weighted sum of the values returned in ``components``.  The insight
rules are checked against the unrounded scores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constants import COMPONENT_WEIGHTS, RECENT_WINDOW_DAYS, SCORE_LOOKBACK_DAYS
from health_data import HealthDataAggregator, HealthDataPoint

log = logging.getLogger("health_score")


@dataclass(frozen=True)
class ScoreRange:
    min: float
    ideal: float
    max: float


SLEEP_RANGE = ScoreRange(min=0, ideal=8, max=10)
RECOVERY_RANGE = ScoreRange(min=0, ideal=85, max=100)
NUTRITION_RANGE = ScoreRange(min=0, ideal=80, max=100)
STRESS_RANGE = ScoreRange(min=0, ideal=0, max=100)

NEUTRAL_SCORE = 50.0
MIN_CONSISTENCY_DAYS = 3
IDEAL_WORKOUT_RATIO = 4 / 7  # 4-5 sessions a week
CONSISTENCY_BAND = (0.9, 1.2)

IMPROVING_FACTOR = 1.05
DECLINING_FACTOR = 0.95

# Sleep message fires below this component score (a 5h week scores 62).
SLEEP_INSIGHT_THRESHOLD = 70

# (component, predicate, message), evaluated in order; each adds at most one line.
INSIGHT_RULES = [
    ("sleep", lambda v: v < SLEEP_INSIGHT_THRESHOLD,
     "Your sleep could use improvement. Aim for 7-9 hours per night."),
    ("recovery", lambda v: v < 50,
     "Recovery is low. Consider adding rest days or reducing intensity."),
    ("consistency", lambda v: v > 80,
     "Great workout consistency! Keep it up."),
    ("consistency", lambda v: v < 50,
     "Try to maintain a more consistent workout schedule."),
    ("stress", lambda v: v < 50,
     "Stress levels are elevated. Consider stress-reduction activities."),
]
FALLBACK_INSIGHT = "Your health metrics are looking good. Keep maintaining your routine!"


@dataclass(frozen=True)
class HealthScore:
    overall: int
    components: Dict[str, int]
    trend: str
    insights: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "components": dict(self.components),
            "trend": self.trend,
            "insights": list(self.insights),
        }


# ─── Component helpers ─────────────────────────────────────

def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def component_score(values: Iterable[float], score_range: ScoreRange) -> float:
    """Score 0-100 for a higher-is-better metric; 50 when there are no values."""
    values = list(values)
    if not values:
        return NEUTRAL_SCORE
    avg = _mean(values)
    if avg >= score_range.ideal:
        return 100.0
    if score_range.ideal == 0:
        return 0.0
    return _clamp((avg / score_range.ideal) * 100)


def consistency_score(series: List[HealthDataPoint]) -> float:
    """Share of logged days with a workout, scored against 4 per 7 days."""
    if len(series) < MIN_CONSISTENCY_DAYS:
        return NEUTRAL_SCORE
    workout_days = sum(1 for p in series if p.workout_count > 0)
    ratio = workout_days / len(series)
    low, high = CONSISTENCY_BAND
    if IDEAL_WORKOUT_RATIO * low <= ratio <= IDEAL_WORKOUT_RATIO * high:
        return 100.0
    return _clamp((ratio / IDEAL_WORKOUT_RATIO) * 100)


def recovery_trend(recent: List[HealthDataPoint], older: List[HealthDataPoint]) -> str:
    recent_avg = _mean([p.recovery_score for p in recent])
    older_avg = _mean([p.recovery_score for p in older])
    if recent_avg > older_avg * IMPROVING_FACTOR:
        return "improving"
    if recent_avg < older_avg * DECLINING_FACTOR:
        return "declining"
    return "stable"


def score_insights(components: Dict[str, float]) -> List[str]:
    insights = [
        message for name, triggered, message in INSIGHT_RULES
        if triggered(components[name])
    ]
    return insights or [FALLBACK_INSIGHT]


def compute_health_score(recent: List[HealthDataPoint],
                         older: List[HealthDataPoint]) -> HealthScore:
    """Score the recent window; *older* only feeds the trend."""
    # Stress is lower-is-better, so invert the shared formula.
    stress = 100 - component_score([p.stress_level for p in recent], STRESS_RANGE)

    raw = {
        "sleep": component_score([p.sleep_hours for p in recent], SLEEP_RANGE),
        "recovery": component_score([p.recovery_score for p in recent], RECOVERY_RANGE),
        "consistency": consistency_score(recent),
        "nutrition": component_score([p.nutrition_score for p in recent], NUTRITION_RANGE),
        "stress": _clamp(stress),
    }
    # Insight rules see the exact scores; reporting and weighting use whole numbers.
    components = {name: round(value) for name, value in raw.items()}
    overall = round(
        COMPONENT_WEIGHTS["sleep"] * components["sleep"]
        + COMPONENT_WEIGHTS["recovery"] * components["recovery"]
        + COMPONENT_WEIGHTS["consistency"] * components["consistency"]
        + COMPONENT_WEIGHTS["nutrition"] * components["nutrition"]
        + COMPONENT_WEIGHTS["stress"] * components["stress"]
    )

    return HealthScore(
        overall=int(_clamp(overall)),
        components=components,
        trend=recovery_trend(recent, older),
        insights=tuple(score_insights(raw)),
    )


class HealthScoreCalculator:
    """Loads the recent (last 7 days) and older (days 8-30) windows and scores them."""

    def __init__(self, aggregator: HealthDataAggregator):
        self.aggregator = aggregator

    def get_health_score(self, user_id: str, today: Optional[date] = None) -> HealthScore:
        today = today or date.today()
        recent_start = today - timedelta(days=RECENT_WINDOW_DAYS - 1)
        older_start = today - timedelta(days=SCORE_LOOKBACK_DAYS - 1)
        older_end = recent_start - timedelta(days=1)

        recent = self.aggregator.aggregate(user_id, recent_start, today)
        older = self.aggregator.aggregate(user_id, older_start, older_end)

        score = compute_health_score(recent, older)
        log.info("Health score for user %s: %d (%s, %d recent days, %d older days)",
                 user_id, score.overall, score.trend, len(recent), len(older))
        return score
