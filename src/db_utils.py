"""
Postgres access for the check-in / workout store.

Connection strings come from POSTGRES_CONNECTION_STRING, falling back to
DATABASE_URL (Heroku).  psycopg2 rejects the ``postgres://`` scheme, so it
is rewritten to ``postgresql://``.
"""

from __future__ import annotations

import os

import psycopg2
from dotenv import load_dotenv


def normalize_db_url(url: str) -> str:
    url = (url or "").strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def resolve_conn_str() -> str:
    """Connection string from the environment, or "" when none is set."""
    load_dotenv()
    return normalize_db_url(
        os.getenv("POSTGRES_CONNECTION_STRING") or os.getenv("DATABASE_URL") or ""
    )


def connect(conn_str: str):
    """Open a psycopg2 connection; the caller closes it."""
    if not conn_str:
        raise RuntimeError(
            "No health store configured: set POSTGRES_CONNECTION_STRING or DATABASE_URL"
        )
    return psycopg2.connect(conn_str)
