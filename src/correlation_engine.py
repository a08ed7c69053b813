"""
Correlation Engine
==================
Computes a fixed set of lifestyle ↔ performance correlations over a user's
daily health series and attaches a templated insight to each.

  nutrition_recovery      nutrition_score  vs recovery_score   same day
  sleep_performance       sleep_hours      vs workout_volume   next day
  volume_recovery         workout_volume   vs recovery_score   next day
  sleep_workout_quality   sleep_hours      vs workout_quality  same day
  stress_performance      stress_level     vs workout_volume   same day

Lagged pairs compare day i of the series with day i+1 (the next logged
day).  Coefficients are plain Pearson r; there is no significance testing.
Strength thresholds: |r| < 0.3 weak, < 0.6 moderate, else strong.
Direction is "none" when |r| < 0.1.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from constants import DEFAULT_PERIOD, MIN_CORRELATION_DAYS
from health_data import (
    HealthDataAggregator,
    HealthDataPoint,
    lookback_window,
    series_to_frame,
)

log = logging.getLogger("correlation_engine")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

# (type, x column, y column, lag in days)
CORRELATION_PAIRS: List[Tuple[str, str, str, int]] = [
    ("nutrition_recovery", "nutrition_score", "recovery_score", 0),
    ("sleep_performance", "sleep_hours", "workout_volume", 1),
    ("volume_recovery", "workout_volume", "recovery_score", 1),
    ("sleep_workout_quality", "sleep_hours", "workout_quality", 0),
    ("stress_performance", "stress_level", "workout_volume", 0),
]

CORRELATION_TYPES = [pair[0] for pair in CORRELATION_PAIRS]

MIN_PEARSON_POINTS = 3
MODERATE_THRESHOLD = 0.3
STRONG_THRESHOLD = 0.6
DIRECTION_THRESHOLD = 0.1

# Insight lookup: type -> ordered [((strength, direction), sentence)].
# None matches any value; the first matching row wins, otherwise the
# type's DEFAULT_INSIGHTS sentence is used.
InsightTable = List[Tuple[Tuple[Optional[str], Optional[str]], str]]

INSIGHT_TABLES: Dict[str, InsightTable] = {
    "nutrition_recovery": [
        (("strong", "positive"),
         "Your nutrition quality strongly influences your recovery. "
         "On days you eat well, you recover better."),
        (("moderate", None),
         "There is a moderate link between your nutrition and recovery."),
    ],
    "sleep_performance": [
        (("strong", "positive"),
         "Better sleep directly improves your next-day workout performance."),
        ((None, "positive"),
         "More sleep tends to lead to better workouts."),
    ],
    "volume_recovery": [
        ((None, "negative"),
         "Higher training volume impacts your recovery. Consider deload weeks."),
    ],
    "sleep_workout_quality": [
        (("strong", None),
         "Sleep quality has a major impact on your workout quality."),
    ],
    "stress_performance": [
        ((None, "negative"),
         "High stress is negatively impacting your workouts. Consider stress management."),
    ],
}

DEFAULT_INSIGHTS: Dict[str, str] = {
    "nutrition_recovery": "Keep tracking to see how nutrition affects your recovery.",
    "sleep_performance": "Keep tracking to understand your sleep-performance relationship.",
    "volume_recovery": "Your body is handling training volume well.",
    "sleep_workout_quality": "Sleep affects your workout quality.",
    "stress_performance": "Your stress levels are not significantly impacting performance.",
}

# Actionable follow-ups; no default, most combinations carry none.
RECOMMENDATION_TABLES: Dict[str, InsightTable] = {
    "nutrition_recovery": [
        (("strong", "positive"),
         "Keep prioritising protein and whole foods on hard training days."),
        (("moderate", "positive"),
         "Log meals more consistently to see how far better nutrition lifts recovery."),
    ],
    "sleep_performance": [
        (("strong", "positive"),
         "Protect 7-9 hours of sleep the night before key sessions."),
        (("moderate", "positive"),
         "Aim for a consistent bedtime before heavy training days."),
    ],
    "volume_recovery": [
        (("strong", "negative"),
         "Schedule a deload week: cut working sets by 30-40% for 5-7 days."),
        (("moderate", "negative"),
         "Spread volume more evenly across the week and add a rest day after your biggest session."),
    ],
    "stress_performance": [
        (("strong", "negative"),
         "Reduce training intensity on high-stress days and add breathing or mobility work."),
        (("moderate", "negative"),
         "Try a short wind-down routine on stressful days before training."),
    ],
}


@dataclass(frozen=True)
class CorrelationResult:
    type: str
    correlation: float
    strength: str
    direction: str
    insight: str
    data_points: int
    recommendation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "correlation": self.correlation,
            "strength": self.strength,
            "direction": self.direction,
            "insight": self.insight,
            "dataPoints": self.data_points,
            "recommendation": self.recommendation,
        }


# ═══════════════════════════════════════════════════════════════
#  MATH
# ═══════════════════════════════════════════════════════════════

def pearson_correlation(x: Sequence[float], y: Sequence[float],
                        ndigits: Optional[int] = 2) -> float:
    """Pearson r via the raw-sums formula.

    r = (nΣxy − ΣxΣy) / √[(nΣx² − (Σx)²)(nΣy² − (Σy)²)]

    Returns 0.0 for mismatched lengths, fewer than 3 points, or zero
    variance in either vector.  Rounded to *ndigits* unless it is None.
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    n = len(xs)
    if n != len(ys) or n < MIN_PEARSON_POINTS:
        return 0.0
    # Exact check first: float sums of a constant vector can leave a tiny
    # non-zero variance term.
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return 0.0

    sum_x = xs.sum()
    sum_y = ys.sum()
    numerator = n * np.dot(xs, ys) - sum_x * sum_y
    variance_term = (n * np.dot(xs, xs) - sum_x ** 2) * (n * np.dot(ys, ys) - sum_y ** 2)
    if not variance_term > 0:
        return 0.0

    r = float(numerator / math.sqrt(variance_term))
    r = max(-1.0, min(1.0, r))
    return round(r, ndigits) if ndigits is not None else r


def classify_correlation(r: float) -> Tuple[str, str]:
    """Return (strength, direction) for a coefficient."""
    magnitude = abs(r)
    if magnitude < MODERATE_THRESHOLD:
        strength = "weak"
    elif magnitude < STRONG_THRESHOLD:
        strength = "moderate"
    else:
        strength = "strong"

    if magnitude < DIRECTION_THRESHOLD:
        direction = "none"
    else:
        direction = "positive" if r > 0 else "negative"
    return strength, direction


def _lookup(table: InsightTable, strength: str, direction: str) -> Optional[str]:
    for (want_strength, want_direction), sentence in table:
        if want_strength not in (None, strength):
            continue
        if want_direction not in (None, direction):
            continue
        return sentence
    return None


def select_insight(correlation_type: str, strength: str, direction: str) -> str:
    found = _lookup(INSIGHT_TABLES.get(correlation_type, []), strength, direction)
    return found or DEFAULT_INSIGHTS[correlation_type]


def select_recommendation(correlation_type: str, strength: str,
                          direction: str) -> Optional[str]:
    return _lookup(RECOMMENDATION_TABLES.get(correlation_type, []), strength, direction)


def compute_correlations(series: List[HealthDataPoint]) -> List[CorrelationResult]:
    """All five correlations for a series, or [] below MIN_CORRELATION_DAYS."""
    n = len(series)
    if n < MIN_CORRELATION_DAYS:
        log.info("Not enough data for correlation analysis (%d days, need >= %d).",
                 n, MIN_CORRELATION_DAYS)
        return []

    df = series_to_frame(series)
    results: List[CorrelationResult] = []
    for corr_type, x_col, y_col, lag in CORRELATION_PAIRS:
        xs = df[x_col].to_numpy(dtype=float)
        ys = df[y_col].to_numpy(dtype=float)
        if lag:
            xs, ys = xs[:-lag], ys[lag:]

        # Classify on the unrounded coefficient, report it rounded.
        raw = pearson_correlation(xs, ys, ndigits=None)
        strength, direction = classify_correlation(raw)
        results.append(CorrelationResult(
            type=corr_type,
            correlation=round(raw, 2),
            strength=strength,
            direction=direction,
            insight=select_insight(corr_type, strength, direction),
            data_points=len(xs),
            recommendation=select_recommendation(corr_type, strength, direction),
        ))

    log.info("Computed %d correlations over %d days", len(results), n)
    return results


# ═══════════════════════════════════════════════════════════════
#  ENGINE
# ═══════════════════════════════════════════════════════════════

class CorrelationEngine:
    """Aggregates a user's lookback window and correlates it."""

    def __init__(self, aggregator: HealthDataAggregator):
        self.aggregator = aggregator

    def get_correlations(self, user_id: str, period_days: int = DEFAULT_PERIOD,
                         today: Optional[date] = None) -> List[CorrelationResult]:
        start, end = lookback_window(period_days, today)
        series = self.aggregator.aggregate(user_id, start, end)
        return compute_correlations(series)
