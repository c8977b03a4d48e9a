import os
from pathlib import Path
from dotenv import load_dotenv

# Override=True so changes in backend/.env take effect on process reload (and not get
# stuck on old environment variables).
#
# For automated tests (SQLite), we need to prevent backend/.env from overriding the
# test DATABASE_URL. Set DISABLE_DOTENV=1 to skip loading .env.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_bool(name: str, default: str = "1") -> bool:
    v = (os.getenv(name, default) or default).strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


_raw_database_url = (os.getenv("DATABASE_URL") or "").strip()
# Default to a local SQLite DB for dev so the backend can start out-of-the-box.
# Use an absolute path so it works regardless of current working directory.
_default_sqlite_path = (Path(__file__).resolve().parent.parent / "dev.db").as_posix()
DATABASE_URL = _raw_database_url or f"sqlite:///{_default_sqlite_path}"

# development / production. Production hides raw errors and stack traces.
ENVIRONMENT = (os.getenv("ENVIRONMENT") or "development").strip().lower()
IS_PRODUCTION = ENVIRONMENT == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Auth / JWT
# NOTE: keep a default for local dev so the server can boot even if SECRET_KEY isn't set.
SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret_change_me")
JWT_EXPIRES_TIME_MINUTES = _env_int("JWT_EXPIRES_TIME_MINUTES", 60 * 24 * 7)
COOKIE_EXPIRES_TIME_DAYS = _env_int("COOKIE_EXPIRES_TIME_DAYS", 7)
RESET_TOKEN_EXPIRE_MINUTES = _env_int("RESET_TOKEN_EXPIRE_MINUTES", 30)

# Resume uploads
# Absolute path; override with UPLOAD_DIR in env (useful for tests).
UPLOAD_DIR = os.getenv("UPLOAD_DIR") or (Path(__file__).resolve().parent.parent / "uploads").as_posix()
MAX_FILE_SIZE = _env_int("MAX_FILE_SIZE", 2 * 1024 * 1024)  # 2MB

# Geocoding (MapQuest-compatible). Without a key, jobs are saved without coordinates.
GEOCODER_API_KEY = os.getenv("GEOCODER_API_KEY", "")
GEOCODER_BASE_URL = os.getenv("GEOCODER_BASE_URL", "https://www.mapquestapi.com/geocoding/v1/address")
GEOCODER_TIMEOUT_S = float(os.getenv("GEOCODER_TIMEOUT_S", "10") or "10")

# SMTP (password reset emails)
SMTP_HOST = (os.getenv("SMTP_HOST") or "").strip()
SMTP_PORT = _env_int("SMTP_PORT", 587)
SMTP_USER = (os.getenv("SMTP_USER") or "").strip()
SMTP_PASS = (os.getenv("SMTP_PASS") or "").strip()
SMTP_FROM = (os.getenv("SMTP_FROM") or SMTP_USER).strip()
SMTP_TLS = _env_bool("SMTP_TLS", "1")

# Rate limiting: 200 requests per 10 minutes per client IP.
RATE_LIMIT_MAX_REQUESTS = _env_int("RATE_LIMIT_MAX_REQUESTS", 200)
RATE_LIMIT_WINDOW_SECONDS = _env_int("RATE_LIMIT_WINDOW_SECONDS", 10 * 60)
# Honour X-Forwarded-For only when running behind a trusted reverse proxy.
TRUST_PROXY_HEADERS = _env_bool("TRUST_PROXY_HEADERS", "0")
