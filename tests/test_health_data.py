"""
Tests for the health data aggregator.

Covers: per-day means, workout counts / volume sums, gap handling,
numeric coercion at the boundary, ordering and lookback windows.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from conftest import InMemoryHealthDataSource, TODAY
from db_utils import connect, normalize_db_url, resolve_conn_str
from health_data import (
    HealthDataAggregator,
    HealthDataPoint,
    PostgresHealthDataSource,
    lookback_window,
    series_to_frame,
)

START = date(2026, 2, 1)


def _aggregate(check_ins=None, workouts=None, start=START, end=TODAY):
    source = InMemoryHealthDataSource(check_ins, workouts)
    return HealthDataAggregator(source).aggregate("user-1", start, end)


# ─── Daily aggregation ────────────────────────────────────────


class TestDailyAggregation:

    def test_empty_store_returns_empty_series(self):
        assert _aggregate() == []

    def test_check_ins_on_same_day_are_averaged(self):
        series = _aggregate(check_ins=[
            {"date": date(2026, 2, 10), "sleep_hours": 6, "stress_level": 40},
            {"date": date(2026, 2, 10), "sleep_hours": 8, "stress_level": 60},
        ])
        assert len(series) == 1
        assert series[0].sleep_hours == pytest.approx(7.0)
        assert series[0].stress_level == pytest.approx(50.0)

    def test_nutrition_quality_maps_to_nutrition_score(self):
        series = _aggregate(check_ins=[{"date": date(2026, 2, 10), "nutrition_quality": 72}])
        assert series[0].nutrition_score == pytest.approx(72.0)

    def test_workouts_counted_and_volume_summed(self):
        series = _aggregate(workouts=[
            {"date": date(2026, 2, 10), "workout_id": "w1", "volume": 5000},
            {"date": date(2026, 2, 10), "workout_id": "w2", "volume": 2500.5},
        ])
        assert series[0].workout_count == 2
        assert series[0].workout_volume == pytest.approx(7500.5)

    def test_workout_only_day_defaults_readiness_to_zero(self):
        series = _aggregate(workouts=[{"date": date(2026, 2, 10), "workout_id": "w1", "volume": 100}])
        point = series[0]
        assert point.sleep_hours == 0.0
        assert point.recovery_score == 0.0
        assert point.workout_count == 1

    def test_check_in_only_day_is_a_rest_day(self):
        series = _aggregate(check_ins=[{"date": date(2026, 2, 10), "sleep_hours": 7}])
        assert series[0].workout_count == 0
        assert series[0].workout_volume == 0.0

    def test_days_merge_across_record_kinds(self):
        series = _aggregate(
            check_ins=[{"date": date(2026, 2, 10), "energy_level": 70}],
            workouts=[{"date": date(2026, 2, 10), "workout_id": "w1", "volume": 900}],
        )
        assert len(series) == 1
        assert series[0].energy_level == pytest.approx(70.0)
        assert series[0].workout_volume == pytest.approx(900.0)

    def test_workout_quality_is_energy_level(self):
        series = _aggregate(check_ins=[{"date": date(2026, 2, 10), "energy_level": 64}])
        assert series[0].workout_quality == series[0].energy_level == 64.0


# ─── Gaps and ordering ───────────────────────────────────────


class TestGapsAndOrdering:

    def test_missing_days_are_not_zero_filled(self):
        series = _aggregate(check_ins=[
            {"date": date(2026, 2, 1), "sleep_hours": 7},
            {"date": date(2026, 2, 5), "sleep_hours": 8},
        ])
        assert [p.date for p in series] == [date(2026, 2, 1), date(2026, 2, 5)]

    def test_series_sorted_ascending(self):
        series = _aggregate(
            check_ins=[
                {"date": date(2026, 2, 9), "sleep_hours": 7},
                {"date": date(2026, 2, 3), "sleep_hours": 6},
            ],
            workouts=[{"date": date(2026, 2, 6), "workout_id": "w", "volume": 10}],
        )
        dates = [p.date for p in series]
        assert dates == sorted(dates)
        assert len(dates) == 3

    def test_rows_outside_range_are_dropped(self):
        class LeakySource(InMemoryHealthDataSource):
            def fetch_check_ins(self, user_id, start_date, end_date):
                return [dict(r) for r in self.check_ins]

        source = LeakySource(check_ins=[
            {"date": date(2026, 1, 1), "sleep_hours": 9},
            {"date": date(2026, 2, 2), "sleep_hours": 7},
        ])
        series = HealthDataAggregator(source).aggregate("u", START, TODAY)
        assert [p.date for p in series] == [date(2026, 2, 2)]


# ─── Coercion ────────────────────────────────────────────────


class TestCoercion:

    def test_string_and_decimal_numerics(self):
        series = _aggregate(
            check_ins=[{"date": "2026-02-10", "sleep_hours": "7.5", "recovery_score": Decimal("81")}],
            workouts=[{"date": "2026-02-10", "workout_id": "w", "volume": "1200"}],
        )
        assert series[0].sleep_hours == pytest.approx(7.5)
        assert series[0].recovery_score == pytest.approx(81.0)
        assert series[0].workout_volume == pytest.approx(1200.0)

    def test_none_and_garbage_become_zero(self):
        series = _aggregate(check_ins=[
            {"date": date(2026, 2, 10), "sleep_hours": None, "stress_level": "n/a"},
        ])
        assert series[0].sleep_hours == 0.0
        assert series[0].stress_level == 0.0

    def test_missing_field_does_not_drag_mean(self):
        series = _aggregate(check_ins=[
            {"date": date(2026, 2, 10), "sleep_hours": 8},
            {"date": date(2026, 2, 10), "sleep_hours": None},
        ])
        assert series[0].sleep_hours == pytest.approx(8.0)

    def test_created_at_timestamp_is_used_for_date(self):
        class TimestampSource(InMemoryHealthDataSource):
            def fetch_check_ins(self, user_id, start_date, end_date):
                return [{"created_at": datetime(2026, 2, 10, 21, 30), "sleep_hours": 6}]

        series = HealthDataAggregator(TimestampSource()).aggregate("u", START, TODAY)
        assert series[0].date == date(2026, 2, 10)

    def test_points_are_immutable(self):
        point = HealthDataPoint(date=date(2026, 2, 10))
        with pytest.raises(Exception):
            point.sleep_hours = 9


# ─── Helpers ─────────────────────────────────────────────────


class TestHelpers:

    def test_lookback_window_is_inclusive(self):
        start, end = lookback_window(7, TODAY)
        assert end == TODAY
        assert start == TODAY - timedelta(days=6)

    def test_series_to_frame_has_quality_column(self):
        df = series_to_frame([HealthDataPoint(date=TODAY, energy_level=55)])
        assert df.loc[TODAY, "workout_quality"] == 55

    def test_to_dict_uses_camel_case(self):
        d = HealthDataPoint(date=TODAY, sleep_hours=7).to_dict()
        assert d["date"] == "2026-03-01"
        assert d["sleepHours"] == 7
        assert "workoutQuality" in d


class TestPostgresSource:

    def test_missing_connection_string_raises(self, monkeypatch):
        monkeypatch.delenv("POSTGRES_CONNECTION_STRING", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setattr("health_data.resolve_conn_str", lambda: "")
        source = PostgresHealthDataSource()
        with pytest.raises(RuntimeError):
            source.fetch_check_ins("u", START, TODAY)

    def test_queries_filter_by_user_and_range(self, monkeypatch):
        from unittest.mock import MagicMock

        cursor = MagicMock()
        cursor.fetchall.return_value = [{"date": date(2026, 2, 10), "sleep_hours": 7}]
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor
        connect = MagicMock(return_value=conn)
        monkeypatch.setattr("db_utils.psycopg2.connect", connect)

        rows = PostgresHealthDataSource("postgresql://x").fetch_check_ins("u-9", START, TODAY)

        assert rows == [{"date": date(2026, 2, 10), "sleep_hours": 7}]
        _query, params = cursor.execute.call_args[0]
        assert params == ("u-9", START, TODAY)
        conn.close.assert_called_once()


class TestDbUtils:

    def test_postgres_scheme_is_rewritten(self):
        assert normalize_db_url(" postgres://u:p@h/db ") == "postgresql://u:p@h/db"
        assert normalize_db_url("postgresql://h/db") == "postgresql://h/db"

    def test_explicit_connection_string_wins_over_database_url(self, monkeypatch):
        monkeypatch.setattr("db_utils.load_dotenv", lambda: None)
        monkeypatch.setenv("POSTGRES_CONNECTION_STRING", "postgresql://primary/db")
        monkeypatch.setenv("DATABASE_URL", "postgres://heroku/db")
        assert resolve_conn_str() == "postgresql://primary/db"

        monkeypatch.delenv("POSTGRES_CONNECTION_STRING")
        assert resolve_conn_str() == "postgresql://heroku/db"

    def test_connect_refuses_empty_url_without_touching_driver(self, monkeypatch):
        from unittest.mock import MagicMock

        driver = MagicMock()
        monkeypatch.setattr("db_utils.psycopg2.connect", driver)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            connect("")
        driver.assert_not_called()
