"""
Health Report — command-line view of a user's health intelligence
==================================================================
Prints the health score, correlations and (optionally) the narrative
insights for one user as JSON.

Usage:
    python health_report.py --user USER_ID
    python health_report.py --user USER_ID --period 14
    python health_report.py --user USER_ID --insights
    python health_report.py --user USER_ID --today 2026-03-01
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

import config
from constants import ALLOWED_PERIODS, DEFAULT_PERIOD
from health_data import PostgresHealthDataSource
from health_intelligence import HealthIntelligenceService

log = logging.getLogger("health_report")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Health score and correlation report")
    parser.add_argument("--user", required=True, help="User id to report on")
    parser.add_argument("--period", type=int, choices=ALLOWED_PERIODS,
                        default=DEFAULT_PERIOD, help="Correlation lookback in days")
    parser.add_argument("--insights", action="store_true",
                        help="Also request narrative insights from the model")
    parser.add_argument("--today", type=date.fromisoformat, default=None,
                        help="Reference day (YYYY-MM-DD), defaults to today")
    return parser


def run(args: argparse.Namespace, service: Optional[HealthIntelligenceService] = None) -> dict:
    service = service or HealthIntelligenceService(
        PostgresHealthDataSource(config.POSTGRES_CONNECTION_STRING),
        args.user,
        today=args.today,
    )
    report = {
        "user": args.user,
        "period": args.period,
        "score": service.get_health_score().to_dict(),
        "correlations": [c.to_dict() for c in service.get_correlations(args.period)],
    }
    if args.insights:
        report["insights"] = service.generate_ai_insights(args.period)
    return report


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = build_parser().parse_args(argv)
    try:
        report = run(args)
    except Exception as e:
        log.error("Health report failed: %s", e)
        return 1
    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
