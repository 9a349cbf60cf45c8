import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
repo_root = Path(__file__).resolve().parents[1]
environment = os.getenv("ENVIRONMENT", "development")
env_file = repo_root / f".env.{environment}"
if env_file.exists():
    load_dotenv(env_file, override=True)
else:
    env_path = repo_root / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
load_dotenv()


def _days_from_env(name: str, default: int) -> timedelta:
    return timedelta(days=int(os.getenv(name, str(default))))


class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or "dev-secret-key-change-in-production"

    # Token configuration: access and refresh tokens are signed with separate secrets
    JWT_SECRET = os.getenv("JWT_SECRET") or os.getenv("JWT_SECRET_KEY") or ""
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET") or ""
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_TOKEN_EXPIRES = _days_from_env("JWT_ACCESS_TOKEN_EXPIRES_DAYS", 7)
    JWT_REFRESH_TOKEN_EXPIRES = _days_from_env("JWT_REFRESH_TOKEN_EXPIRES_DAYS", 30)

    # Discovery searches are aborted after this many seconds
    DISCOVERY_QUERY_TIMEOUT_SECONDS = float(os.getenv("DISCOVERY_QUERY_TIMEOUT_SECONDS", "5"))

    # CORS configuration: allow production frontend origin(s) via env (comma-separated)
    _cors_env = os.getenv("CORS_ORIGINS", "").strip()
    CORS_ORIGINS = (
        [o.strip() for o in _cors_env.split(",") if o.strip()]
        if _cors_env
        else ["http://localhost:5173", "http://localhost:3000"]
    )

    # Rate limits for credential endpoints (calls per window)
    AUTH_RATE_LIMIT_CALLS = int(os.getenv("AUTH_RATE_LIMIT_CALLS", "10"))
    AUTH_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("AUTH_RATE_LIMIT_WINDOW_SECONDS", "60"))
