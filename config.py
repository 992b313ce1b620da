"""
Guidance Rx Configuration
===========================
AI-assisted intervention prescriptions for a school guidance office.
- Weekly prescription: one JSON intervention plan per calendar week
- Category prescription: sectioned plan for a referral category (ungated)
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Project root: directory containing this config.py file
PROJECT_ROOT = str(Path(__file__).resolve().parent)

# Load .env file (override=True to ensure .env values take precedence)
load_dotenv(override=True)

# --- API Configuration ---
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.environ.get("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
MAX_TOKENS = 2048
CATEGORY_MAX_TOKENS = 2500
CATEGORY_TEMPERATURE = 0.7

# --- Weekly Gate ---
# "iso": ISO-8601 (year, week), Monday start.
# "legacy": day-of-year formula kept for compatibility with old history files.
WEEK_NUMBERING = os.environ.get("WEEK_NUMBERING", "iso").lower()
SEVERITY_LEVELS = ("low", "medium", "high")

# --- Request Validation ---
MAX_ISSUE_LENGTH = 2000

# --- Auth (bearer JWT issued by the main admin app) ---
JWT_SECRET = os.environ.get("JWT_SECRET", "")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
PRESCRIBER_ROLES = [
    r.strip().lower()
    for r in os.environ.get("PRESCRIBER_ROLES", "admin,counselor,staff").split(",")
    if r.strip()
]

# --- Server ---
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))

# --- Paths (relative to PROJECT_ROOT) ---
HISTORY_PATH = os.environ.get(
    "HISTORY_PATH", os.path.join(PROJECT_ROOT, "database", "prescription-history.json")
)
REPORTS_PATH = os.path.join(PROJECT_ROOT, "reports")
LOG_DIR = os.path.join(PROJECT_ROOT, "logs")
