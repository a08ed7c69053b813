"""
Insight Narrator
================
Optional free-text elaboration of a health score and its correlations.

One request/response call to a text-generation model, seeded with the
computed numbers.  When correlations are empty no call is made; when the
call fails for any reason the score's templated insights are returned
instead.  ``InsightNarrator.narrate`` never raises.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from crewai import LLM

import config
from correlation_engine import CorrelationResult
from health_score import HealthScore

log = logging.getLogger("insight_narrator")


SYSTEM_PROMPT = (
    "You are a sports science expert providing personalized health and "
    "performance insights based on data analysis. Be specific, scientific, "
    "and actionable."
)

NOT_ENOUGH_DATA_MESSAGE = (
    "Not enough data to generate insights. "
    "Keep logging your readiness check-ins and workouts!"
)


class TextGenerator(ABC):
    """Anything that turns a system instruction + prompt into text."""

    @abstractmethod
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        ...


class CrewAITextGenerator(TextGenerator):
    """Single-shot completion through crewai.LLM (LiteLLM model routing)."""

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None,
                 temperature: Optional[float] = None, max_tokens: Optional[int] = None,
                 timeout: Optional[float] = None):
        self.model = model or config.INSIGHTS_MODEL
        self.api_key = api_key or config.INSIGHTS_API_KEY
        self.temperature = config.INSIGHTS_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or config.INSIGHTS_MAX_TOKENS
        self.timeout = timeout or config.INSIGHTS_TIMEOUT_SEC
        self._llm: Optional[LLM] = None

    # Lazy init so importing / constructing never touches the provider.
    def _get_llm(self) -> LLM:
        if self._llm is None:
            self._llm = LLM(
                model=self.model,
                api_key=self.api_key,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        return self._llm

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        reply = self._get_llm().call(messages)
        if not isinstance(reply, str) or not reply.strip():
            raise ValueError(f"Malformed reply from {self.model}: {reply!r}")
        return reply.strip()


def build_insight_prompt(score: HealthScore,
                         correlations: List[CorrelationResult]) -> str:
    c = score.components
    lines = [
        "Analyze this fitness data and provide personalized insights:",
        "",
        f"Health Score: {score.overall}/100",
        f"- Sleep: {c['sleep']}/100",
        f"- Recovery: {c['recovery']}/100",
        f"- Consistency: {c['consistency']}/100",
        f"- Nutrition: {c['nutrition']}/100",
        f"- Stress: {c['stress']}/100",
        f"Trend: {score.trend}",
        "",
        "Correlations found:",
    ]
    lines.extend(
        f"- {r.type}: {r.strength} {r.direction} correlation ({r.correlation:.2f})"
        for r in correlations
    )
    lines += [
        "",
        "Based on this data, provide 3-4 specific, actionable recommendations "
        "to improve performance and recovery. Be concise and practical.",
    ]
    return "\n".join(lines)


class InsightNarrator:
    def __init__(self, generator: Optional[TextGenerator] = None):
        self.generator = generator or CrewAITextGenerator()

    def narrate(self, score: HealthScore,
                correlations: List[CorrelationResult]) -> str:
        if not correlations:
            return NOT_ENOUGH_DATA_MESSAGE

        fallback = " ".join(score.insights)
        try:
            reply = self.generator.generate(
                SYSTEM_PROMPT, build_insight_prompt(score, correlations)
            )
        except Exception as e:
            log.warning("Insight generation failed, using score insights: %s", e)
            return fallback

        if not isinstance(reply, str) or not reply.strip():
            log.warning("Empty or non-text insight reply (%r), using score insights", reply)
            return fallback
        return reply.strip()
