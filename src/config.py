"""Configuration loaded from .env"""

import os

from dotenv import load_dotenv

from db_utils import resolve_conn_str

load_dotenv()

# PostgreSQL
POSTGRES_CONNECTION_STRING = resolve_conn_str()

# Narrative insights (LiteLLM model id routed through crewai.LLM)
INSIGHTS_MODEL = os.getenv("INSIGHTS_MODEL", "gemini/gemini-2.5-flash")
INSIGHTS_API_KEY = os.getenv("GOOGLE_API_KEY", "")
INSIGHTS_TEMPERATURE = float(os.getenv("INSIGHTS_TEMPERATURE", "0.5"))
INSIGHTS_MAX_TOKENS = int(os.getenv("INSIGHTS_MAX_TOKENS", "500"))
INSIGHTS_TIMEOUT_SEC = float(os.getenv("INSIGHTS_TIMEOUT_SEC", "120"))

# API
FRONTEND_ORIGINS = [
    o.strip() for o in os.getenv("FRONTEND_ORIGINS", "").split(",") if o.strip()
] or ["http://localhost:3000", "http://127.0.0.1:3000"]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
