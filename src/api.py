"""
FastAPI backend for the health intelligence endpoints.

Routes:
  GET /api/v1/health/{user_id}/correlations?period=30
  GET /api/v1/health/{user_id}/score
  GET /api/v1/health/{user_id}/insights?period=30
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from constants import ALLOWED_PERIODS, DEFAULT_PERIOD
from health_data import HealthDataSource, PostgresHealthDataSource
from health_intelligence import HealthIntelligenceService
from insight_narrator import CrewAITextGenerator, TextGenerator

log = logging.getLogger("api")


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="Health Intelligence API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


def _data_source() -> HealthDataSource:
    return PostgresHealthDataSource(config.POSTGRES_CONNECTION_STRING)


def _text_generator() -> TextGenerator:
    return CrewAITextGenerator()


def _service(user_id: str) -> HealthIntelligenceService:
    return HealthIntelligenceService(_data_source(), user_id, generator=_text_generator())


def _check_period(period: int) -> None:
    if period not in ALLOWED_PERIODS:
        raise HTTPException(
            status_code=422,
            detail=f"period must be one of {list(ALLOWED_PERIODS)}",
        )


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "health-intelligence-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> JSONResponse:
    try:
        PostgresHealthDataSource(config.POSTGRES_CONNECTION_STRING).ping()
        return JSONResponse({"status": "Online", "message": "Online"})
    except Exception as e:
        return JSONResponse(
            status_code=200,
            content={
                "status": "Waking up",
                "message": f"Service starting or DB unavailable: {e}",
            },
        )


@app.get("/api/v1/health/{user_id}/correlations")
def health_correlations(
    user_id: str, period: int = Query(default=DEFAULT_PERIOD)
) -> List[Dict[str, Any]]:
    _check_period(period)
    try:
        return [c.to_dict() for c in _service(user_id).get_correlations(period)]
    except Exception as e:
        log.exception("Correlations failed for user %s", user_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/health/{user_id}/score")
def health_score(user_id: str) -> Dict[str, Any]:
    try:
        return _service(user_id).get_health_score().to_dict()
    except Exception as e:
        log.exception("Health score failed for user %s", user_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/health/{user_id}/insights")
def health_insights(
    user_id: str, period: int = Query(default=DEFAULT_PERIOD)
) -> Dict[str, Any]:
    _check_period(period)
    try:
        return {"insights": _service(user_id).generate_ai_insights(period)}
    except Exception as e:
        log.exception("Insights failed for user %s", user_id)
        raise HTTPException(status_code=500, detail=str(e))
