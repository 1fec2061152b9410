import os
import secrets
from dotenv import load_dotenv

# --- Load environment first ---
load_dotenv()


def _env_flag(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).strip().lower() in ("1", "true", "yes", "on")


def _env_seed():
    raw = os.getenv("RANDOM_SEED", "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return raw


class Config:
    """Settings read from the environment (.env supported), with defaults."""

    SECRET_KEY = os.getenv("APP_SECRET") or secrets.token_hex(16)
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "5000"))
    DEBUG = _env_flag("DEBUG")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    EXPORT_ENABLED = _env_flag("EXPORT_ENABLED", "true")
    EXPORT_SCALE = int(os.getenv("EXPORT_SCALE", "2"))
    IMAGE_FETCH_TIMEOUT = float(os.getenv("IMAGE_FETCH_TIMEOUT", "15"))
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024
    MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "256"))
    RANDOM_SEED = _env_seed()
