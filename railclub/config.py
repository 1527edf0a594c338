# railclub/config.py
from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DATA_DIR = PROJECT_ROOT / "data"

DB_PATH = DATA_DIR / "railclub.db"
DEFAULT_DATABASE_URL = f"sqlite:///{DB_PATH.as_posix()}"

DATABASE_URL: str = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

if DATABASE_URL == DEFAULT_DATABASE_URL:
    DATA_DIR.mkdir(parents=True, exist_ok=True)

# Operator override key (single source of truth)
ADMIN_KEY: str = os.getenv("ADMIN_KEY", "")

# Required on every /api/email-queue request (X-API-Key header)
EMAIL_QUEUE_API_KEY: str = os.getenv("EMAIL_QUEUE_API_KEY", "")
EMAIL_QUEUE_DEFAULT_MAX_RETRIES: int = int(os.getenv("EMAIL_QUEUE_DEFAULT_MAX_RETRIES", "3"))

SESSION_HOURS: int = int(os.getenv("SESSION_HOURS", "24"))
INVITE_TOKEN_DAYS: int = int(os.getenv("INVITE_TOKEN_DAYS", "7"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

CORS_ALLOWED_ORIGINS: list[str] = [
    o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()
]
