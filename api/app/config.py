import os
from pathlib import Path

from dotenv import load_dotenv

# Base path for the API package
BASE_PATH = Path(__file__).resolve().parent

load_dotenv(BASE_PATH.parent.parent / ".env")

APP_VERSION = os.environ.get("STUDIO_VERSION", "0.1.0")

ENGINE_MODE = os.environ.get("STUDIO_ENGINE", "placeholder").lower()

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
GEMINI_IMAGE_MODEL = os.environ.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
GEMINI_TEXT_MODEL = os.environ.get("GEMINI_TEXT_MODEL", "gemini-2.5-flash")
GEMINI_MAX_ATTEMPTS = max(1, int(os.environ.get("GEMINI_MAX_ATTEMPTS", "3")))
GEMINI_RETRY_BACKOFF_SECONDS = float(os.environ.get("GEMINI_RETRY_BACKOFF_SECONDS", "10"))

# Delay between successive downloads when a client saves every result at once.
DOWNLOAD_STAGGER_MS = int(os.environ.get("STUDIO_DOWNLOAD_STAGGER_MS", "250"))

LOG_LEVEL = os.environ.get("STUDIO_LOG_LEVEL", "INFO").upper()

_DEFAULT_CORS_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

_cors_env = os.environ.get("STUDIO_CORS_ORIGINS")
if _cors_env:
    CORS_ALLOW_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip()]
else:
    CORS_ALLOW_ORIGINS = _DEFAULT_CORS_ORIGINS

CORS_ALLOW_ORIGIN_REGEX = os.environ.get(
    "STUDIO_CORS_ORIGIN_REGEX", r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"
)
