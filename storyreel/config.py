"""
Environment configuration for the worker.

All values are read once at import time, after loading a local .env file.
"""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# ── Gemini API ───────────────────────────────────────────────────────────────

GEMINI_API_KEY = (
    os.environ.get("GEMINI_API_KEY")
    or os.environ.get("GOOGLE_API_KEY")
    or os.environ.get("API_KEY", "")
)
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")

TEXT_MODEL = os.getenv("TEXT_MODEL", "gemini-2.5-flash")
IMAGE_EDIT_MODEL = os.getenv("IMAGE_EDIT_MODEL", "gemini-2.5-flash-image-preview")
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "imagen-4.0-generate-001")
VIDEO_MODEL = os.getenv("VIDEO_MODEL", "veo-2.0-generate-001")

REQUEST_TIMEOUT = float(os.getenv("GEMINI_REQUEST_TIMEOUT", "120"))

# ── Pipeline ─────────────────────────────────────────────────────────────────

SCRIPT_COUNT = int(os.getenv("SCRIPT_COUNT", "2"))

VIDEO_POLL_INTERVAL = float(os.getenv("VIDEO_POLL_INTERVAL", "10"))  # seconds


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


# Unset means poll until the operation reports done.
VIDEO_POLL_MAX_ATTEMPTS = _optional_int("VIDEO_POLL_MAX_ATTEMPTS")

# Finished jobs (status + downloaded clip) kept for status/video lookups; oldest go first.
JOB_HISTORY_LIMIT = int(os.getenv("JOB_HISTORY_LIMIT", "20"))

# ── Worker ───────────────────────────────────────────────────────────────────

WORKER_SHARED_SECRET = os.environ.get("WORKER_SHARED_SECRET", "")
ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = os.environ.get("PORT", "8000")
