"""
Central config & environment helpers.
- Loads env (.env) early
- Exposes database, identity provider and dashboard settings
"""

from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv

# Load .env once for the whole app
load_dotenv(override=False)


def _csv_env(name: str) -> List[str]:
    return [v.strip() for v in (os.getenv(name) or "").split(",") if v.strip()]


# --- database ---------------------------------------------------------------

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "srmdb")

# --- identity provider ------------------------------------------------------

FIREBASE_CREDENTIALS = (os.getenv("FIREBASE_CREDENTIALS") or "").strip()
ADMIN_EMAILS = {e.lower() for e in _csv_env("ADMIN_EMAILS")}

# --- http -------------------------------------------------------------------

_default_origins = {
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
}
ALLOWED_ORIGINS = sorted(_default_origins | set(_csv_env("ALLOWED_ORIGINS")))
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

# --- intake / dashboard -----------------------------------------------------

# Local calendar used for the date filter and the "this month" KPI
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")
WHY_MIN_LENGTH = int(os.getenv("WHY_MIN_LENGTH", "50"))
# Registrations per month after which an SRM earns the sales bonus
MONTHLY_REGISTRATION_TARGET = int(os.getenv("MONTHLY_REGISTRATION_TARGET", "4"))
COUNTRY_CODE = os.getenv("COUNTRY_CODE", "91")
ORG_NAME = os.getenv("ORG_NAME", "ManaCLG LevelUp")
