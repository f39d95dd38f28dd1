"""Runtime settings for the memo generator. Read once from env at import."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parent

# Load .env from backend directory so TECTONIC_BIN etc. are available
load_dotenv(BACKEND_DIR / ".env")


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Version for /health (Render sets RENDER_GIT_COMMIT)
VERSION = (os.environ.get("RENDER_GIT_COMMIT") or "").strip() or "unknown"

HOST = os.environ.get("HOST", "127.0.0.1")
PORT = _env_int("PORT", 10000)

_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:10000",
        "http://127.0.0.1:10000",
    ]

# Templates and support files shipped with the reporting package
REPORTING_DIR = BACKEND_DIR / "reporting"
TEMPLATE_DIR = REPORTING_DIR / "templates"
STATIC_DIR = REPORTING_DIR / "static"
COVER_TEMPLATE_DIR = REPORTING_DIR / "cover_template"

# Cover typesetting (Tectonic)
TECTONIC_BIN = os.environ.get("TECTONIC_BIN", "tectonic")
COVER_COMPILE_TIMEOUT_S = _env_float("COVER_COMPILE_TIMEOUT_S", 120.0)
# Photo frame on the cover is full page width by 170mm
COVER_FRAME_RATIO = _env_float("COVER_FRAME_RATIO", 210.0 / 170.0)
COVER_FIT_TOLERANCE = _env_float("COVER_FIT_TOLERANCE", 0.02)

# Body rendering (Playwright)
PDF_PAGE_FORMAT = os.environ.get("PDF_PAGE_FORMAT", "A4")
IMAGE_WAIT_TIMEOUT_MS = _env_int("IMAGE_WAIT_TIMEOUT_MS", 5000)
FONT_WAIT_TIMEOUT_MS = _env_int("FONT_WAIT_TIMEOUT_MS", 10000)
CHROMIUM_ARGS = ["--no-sandbox", "--disable-dev-shm-usage"]

MAX_PROPERTY_IMAGES = _env_int("MAX_PROPERTY_IMAGES", 6)
