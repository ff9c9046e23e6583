"""Configuration for FinTrack.

Values come from the environment (a local ``.env`` is loaded if present).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load environment variables from .env (root of project)
load_dotenv()

# OpenAI key + model used for statement extraction
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_STATEMENT_MODEL = os.getenv("OPENAI_STATEMENT_MODEL", "gpt-4.1-mini")

# Local durable state (key-value SQLite file)
DB_PATH = os.getenv("FINTRACK_DB_PATH", "fintrack.db")

# Google Apps Script web app that receives synced rows
DEFAULT_SCRIPT_URL = os.getenv(
    "FINTRACK_SCRIPT_URL",
    "https://script.google.com/macros/s/AKfycbyd_fl5wRPoBviIxp_xzMuzyjkEwe_Xmgy8Mwb8p1SC350yNoyhBHw1zqEzDRcfFtP2/exec",
)

# FastAPI base URL (used by the Streamlit UI)
API_BASE = os.getenv("FINTRACK_API_BASE", "http://127.0.0.1:8000")

CURRENCY_SYMBOL = os.getenv("FINTRACK_CURRENCY", "₹")

LOG_LEVEL = os.getenv("FINTRACK_LOG_LEVEL", "INFO")

# Optional rotating log file, e.g. logs/fintrack.log
LOG_FILE = os.getenv("FINTRACK_LOG_FILE")
