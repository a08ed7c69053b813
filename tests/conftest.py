"""
Shared test configuration.

Adds both the project root and src/ to sys.path so the flat modules
(health_data, correlation_engine, ...) import with plain `import module_name`,
and provides an in-memory HealthDataSource so no test needs Postgres.
"""

import os
import sys
from datetime import date, timedelta

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_src_dir = os.path.join(_project_root, "src")

if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

if _src_dir not in sys.path:
    sys.path.insert(1, _src_dir)

from health_data import HealthDataSource  # noqa: E402

TODAY = date(2026, 3, 1)


class InMemoryHealthDataSource(HealthDataSource):
    """Serves fixed check-in / workout rows, filtered by date like the store does."""

    def __init__(self, check_ins=None, workouts=None):
        self.check_ins = list(check_ins or [])
        self.workouts = list(workouts or [])
        self.calls = []

    @staticmethod
    def _in_range(rows, start_date, end_date):
        out = []
        for row in rows:
            day = row["date"]
            if isinstance(day, str):
                day = date.fromisoformat(day[:10])
            if start_date <= day <= end_date:
                out.append(dict(row))
        return out

    def fetch_check_ins(self, user_id, start_date, end_date):
        self.calls.append(("check_ins", user_id, start_date, end_date))
        return self._in_range(self.check_ins, start_date, end_date)

    def fetch_workouts(self, user_id, start_date, end_date):
        self.calls.append(("workouts", user_id, start_date, end_date))
        return self._in_range(self.workouts, start_date, end_date)


def daily_rows(n_days, end=TODAY, **fields):
    """n_days of check-in rows ending on *end*; callables get the day index.

    Index 0 is the oldest day.
    """
    rows = []
    for i in range(n_days):
        row = {"date": end - timedelta(days=n_days - 1 - i)}
        for key, value in fields.items():
            row[key] = value(i) if callable(value) else value
        rows.append(row)
    return rows


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_source():
    return InMemoryHealthDataSource
