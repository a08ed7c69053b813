"""Per-user entry point for correlations, health score and narrative insights."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from constants import DEFAULT_PERIOD
from correlation_engine import CorrelationEngine, CorrelationResult
from health_data import HealthDataAggregator, HealthDataSource
from health_score import HealthScore, HealthScoreCalculator
from insight_narrator import InsightNarrator, TextGenerator


class HealthIntelligenceService:
    """Binds one user and one data source to the analysis components.

    Nothing is cached; every call re-aggregates from the source.  *today*
    pins the reference day (defaults to the current date at call time).
    """

    def __init__(self, source: HealthDataSource, user_id: str,
                 generator: Optional[TextGenerator] = None,
                 today: Optional[date] = None):
        self.user_id = user_id
        self.today = today
        aggregator = HealthDataAggregator(source)
        self.correlation_engine = CorrelationEngine(aggregator)
        self.score_calculator = HealthScoreCalculator(aggregator)
        self.narrator = InsightNarrator(generator)

    def get_correlations(self, period: int = DEFAULT_PERIOD) -> List[CorrelationResult]:
        return self.correlation_engine.get_correlations(self.user_id, period, today=self.today)

    def get_health_score(self) -> HealthScore:
        return self.score_calculator.get_health_score(self.user_id, today=self.today)

    def generate_ai_insights(self, period: int = DEFAULT_PERIOD) -> str:
        correlations = self.get_correlations(period)
        score = self.get_health_score()
        return self.narrator.narrate(score, correlations)


def create_health_intelligence(source: HealthDataSource, user_id: str,
                               generator: Optional[TextGenerator] = None,
                               today: Optional[date] = None) -> HealthIntelligenceService:
    return HealthIntelligenceService(source, user_id, generator=generator, today=today)
