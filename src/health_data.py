"""
Health Data Aggregation
=======================
Builds the per-day series every health analysis runs on.

  HealthDataSource      read-only interface over the check-in / workout store
  PostgresHealthDataSource
                        psycopg2 implementation (readiness_check_ins,
                        workouts + workout_sets)
  HealthDataAggregator  coerces raw rows once, groups them by calendar day
                        and returns typed HealthDataPoint records

A day appears in the series when at least one check-in or workout was
logged on it.  Empty days are omitted, not zero-filled, so the series can
have date gaps.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from psycopg2.extras import RealDictCursor

from db_utils import connect, resolve_conn_str

log = logging.getLogger("health_data")


# Store column -> HealthDataPoint field (daily mean across check-ins)
READINESS_FIELDS = {
    "sleep_hours": "sleep_hours",
    "sleep_quality": "sleep_quality",
    "stress_level": "stress_level",
    "soreness_level": "soreness_level",
    "energy_level": "energy_level",
    "motivation_level": "motivation_level",
    "nutrition_quality": "nutrition_score",
    "recovery_score": "recovery_score",
}

TRAINING_FIELDS = ["workout_count", "workout_volume"]

SERIES_COLUMNS = [*READINESS_FIELDS.values(), *TRAINING_FIELDS]


@dataclass(frozen=True)
class HealthDataPoint:
    """One calendar day of aggregated readiness and training data."""

    date: date
    sleep_hours: float = 0.0
    sleep_quality: float = 0.0
    stress_level: float = 0.0
    soreness_level: float = 0.0
    energy_level: float = 0.0
    motivation_level: float = 0.0
    nutrition_score: float = 0.0
    recovery_score: float = 0.0
    workout_count: int = 0
    workout_volume: float = 0.0

    @property
    def workout_quality(self) -> float:
        # No dedicated quality metric is logged yet; energy stands in for it.
        return self.energy_level

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "sleepHours": self.sleep_hours,
            "sleepQuality": self.sleep_quality,
            "stressLevel": self.stress_level,
            "sorenessLevel": self.soreness_level,
            "energyLevel": self.energy_level,
            "motivationLevel": self.motivation_level,
            "nutritionScore": self.nutrition_score,
            "recoveryScore": self.recovery_score,
            "workoutCount": self.workout_count,
            "workoutVolume": self.workout_volume,
            "workoutQuality": self.workout_quality,
        }


def lookback_window(period_days: int, today: Optional[date] = None) -> Tuple[date, date]:
    """Return (start, end) covering the last *period_days* calendar days."""
    end = today or date.today()
    return end - timedelta(days=period_days - 1), end


def series_to_frame(series: List[HealthDataPoint]) -> pd.DataFrame:
    """Date-indexed DataFrame of a series, including workout_quality."""
    columns = [*SERIES_COLUMNS, "workout_quality"]
    if not series:
        return pd.DataFrame(columns=columns, dtype=float)
    df = pd.DataFrame(
        [{"date": p.date, **{c: getattr(p, c) for c in columns}} for p in series]
    )
    return df.set_index("date")


# ─── Type coercion ──────────────────────────────────────────

def _num(value: Any) -> float:
    """Coerce a store value to float; missing or invalid values become NaN."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _row_date(row: Dict[str, Any]) -> Optional[date]:
    value = row.get("date")
    if value is None:
        value = row.get("created_at")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


# ─── Data source ────────────────────────────────────────────

class HealthDataSource(ABC):
    """Read-only access to a user's raw check-ins and workouts.

    Both methods return plain dict rows for the inclusive date range.
    Rows carry either a ``date`` or a ``created_at`` timestamp; numeric
    fields may be strings, Decimals or None.
    """

    @abstractmethod
    def fetch_check_ins(self, user_id: str, start_date: date,
                        end_date: date) -> List[Dict[str, Any]]:
        """Readiness check-ins with any of the READINESS_FIELDS columns."""

    @abstractmethod
    def fetch_workouts(self, user_id: str, start_date: date,
                       end_date: date) -> List[Dict[str, Any]]:
        """One row per workout session: workout_id, date, volume."""


class PostgresHealthDataSource(HealthDataSource):
    """HealthDataSource backed by the app's PostgreSQL schema."""

    CHECK_INS_SQL = """
        SELECT
            DATE(created_at) AS date,
            sleep_hours, sleep_quality, stress_level, soreness_level,
            energy_level, motivation_level, nutrition_quality, recovery_score
        FROM readiness_check_ins
        WHERE user_id = %s
          AND DATE(created_at) BETWEEN %s AND %s
        ORDER BY created_at
    """

    WORKOUTS_SQL = """
        SELECT
            w.id AS workout_id,
            DATE(w.created_at) AS date,
            COALESCE(SUM(ws.weight * ws.reps), 0) AS volume
        FROM workouts w
        LEFT JOIN workout_sets ws ON ws.workout_id = w.id
        WHERE w.user_id = %s
          AND DATE(w.created_at) BETWEEN %s AND %s
        GROUP BY w.id, DATE(w.created_at)
        ORDER BY date
    """

    def __init__(self, conn_str: Optional[str] = None):
        self.conn_str = conn_str or resolve_conn_str()

    def _fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        conn = connect(self.conn_str)
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(query, params)
                return [dict(row) for row in cur.fetchall()]
        finally:
            conn.close()

    def fetch_check_ins(self, user_id, start_date, end_date):
        return self._fetch_all(self.CHECK_INS_SQL, (user_id, start_date, end_date))

    def fetch_workouts(self, user_id, start_date, end_date):
        return self._fetch_all(self.WORKOUTS_SQL, (user_id, start_date, end_date))

    def ping(self) -> bool:
        self._fetch_all("SELECT 1 AS ok")
        return True


# ─── Aggregator ─────────────────────────────────────────────

class HealthDataAggregator:
    """Turns raw store rows into an ascending series of HealthDataPoint."""

    def __init__(self, source: HealthDataSource):
        self.source = source

    def aggregate(self, user_id: str, start_date: date,
                  end_date: date) -> List[HealthDataPoint]:
        check_ins = self.source.fetch_check_ins(user_id, start_date, end_date)
        workouts = self.source.fetch_workouts(user_id, start_date, end_date)

        frames = [
            f for f in (
                self._daily_readiness(check_ins, start_date, end_date),
                self._daily_training(workouts, start_date, end_date),
            )
            if not f.empty
        ]
        if not frames:
            log.info("No health data for user %s between %s and %s",
                     user_id, start_date, end_date)
            return []

        # Outer join on date: a day with only check-ins or only workouts
        # still appears; fields it lacks default to 0.
        daily = (
            pd.concat(frames, axis=1)
            .reindex(columns=SERIES_COLUMNS)
            .fillna(0.0)
            .sort_index()
        )

        series = [
            HealthDataPoint(
                date=day,
                **{field: float(rec[field]) for field in READINESS_FIELDS.values()},
                workout_count=int(rec["workout_count"]),
                workout_volume=float(rec["workout_volume"]),
            )
            for day, rec in daily.iterrows()
        ]
        log.info("Aggregated %d days for user %s (%s -> %s)",
                 len(series), user_id, start_date, end_date)
        return series

    @staticmethod
    def _daily_readiness(rows: List[Dict[str, Any]], start_date: date,
                         end_date: date) -> pd.DataFrame:
        records = []
        for row in rows:
            day = _row_date(row)
            if day is None or not (start_date <= day <= end_date):
                continue
            rec: Dict[str, Any] = {"date": day}
            for column, field in READINESS_FIELDS.items():
                rec[field] = _num(row.get(column))
            records.append(rec)
        if not records:
            return pd.DataFrame()
        df = pd.DataFrame(records)
        # mean() skips NaN, so a field missing from one check-in does not
        # drag the day's average towards zero.
        return df.groupby("date")[list(READINESS_FIELDS.values())].mean()

    @staticmethod
    def _daily_training(rows: List[Dict[str, Any]], start_date: date,
                        end_date: date) -> pd.DataFrame:
        records = []
        for i, row in enumerate(rows):
            day = _row_date(row)
            if day is None or not (start_date <= day <= end_date):
                continue
            volume = _num(row.get("volume"))
            workout_id = row.get("workout_id")
            records.append({
                "date": day,
                "workout_id": str(workout_id) if workout_id is not None else f"row-{i}",
                "volume": 0.0 if math.isnan(volume) else max(volume, 0.0),
            })
        if not records:
            return pd.DataFrame()
        df = pd.DataFrame(records)
        return df.groupby("date").agg(
            workout_count=("workout_id", "nunique"),
            workout_volume=("volume", "sum"),
        )
