import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # If python-dotenv isn't installed or .env isn't present, that's fine.
    pass


DEFAULT_JWT_SECRET = "dev_change_me"


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode them in source code.
    """

    # -----------------
    # Core
    # -----------------
    # development | production
    APP_ENV: str = os.environ.get("APP_ENV", "development").strip().lower()

    # Preferred: set CASHTRACKR_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: CASHTRACKR_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("CASHTRACKR_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("CASHTRACKR_DB_PATH", "./cashtrackr.sqlite")
    )

    # Used to build links inside emails.
    FRONTEND_URL: str = os.environ.get("FRONTEND_URL", "http://localhost:3000")

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production the app refuses to start with the default.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", DEFAULT_JWT_SECRET)
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "43200"))  # 30 days

    # Throttle for the 6-digit code endpoints (confirm / validate / reset).
    AUTH_RATE_LIMIT_MAX: int = int(os.environ.get("AUTH_RATE_LIMIT_MAX", "5"))
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = int(os.environ.get("AUTH_RATE_LIMIT_WINDOW_SECONDS", "60"))

    # -----------------
    # Mail (SMTP)
    # -----------------
    # Leave MAIL_HOST empty in development to print emails to stdout instead.
    MAIL_HOST: str | None = (os.environ.get("MAIL_HOST") or "").strip() or None
    MAIL_PORT: int = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME: str | None = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD: str | None = os.environ.get("MAIL_PASSWORD")
    MAIL_USE_TLS: bool = _env_bool("MAIL_USE_TLS", True) is True
    MAIL_USE_SSL: bool = _env_bool("MAIL_USE_SSL", False) is True
    MAIL_FROM: str = os.environ.get("MAIL_FROM", '"CashTrackr" <admin@cashtrackr.com>')
    MAIL_TIMEOUT_SECONDS: float = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "10"))

    # Outbox delivery
    OUTBOX_MAX_ATTEMPTS: int = int(os.environ.get("OUTBOX_MAX_ATTEMPTS", "5"))
    OUTBOX_RETRY_SECONDS: int = int(os.environ.get("OUTBOX_RETRY_SECONDS", "60"))

    # Worker
    WORKER_POLL_SECONDS: float = float(os.environ.get("WORKER_POLL_SECONDS", "2.0"))

    # -----------------
    # CORS (development)
    # -----------------
    # The Next.js frontend runs on :3000 in development.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


def load_config() -> Config:
    return Config()


def check_production_config(cfg: Config) -> None:
    """Refuse to run a production build with development defaults."""
    if not cfg.is_production:
        return
    if not cfg.AUTH_JWT_SECRET or cfg.AUTH_JWT_SECRET == DEFAULT_JWT_SECRET:
        raise RuntimeError("AUTH_JWT_SECRET must be set in production")
    if not cfg.MAIL_HOST:
        raise RuntimeError("MAIL_HOST must be set in production")
