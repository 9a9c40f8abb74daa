import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

DEFAULT_DATABASE_URL = "sqlite:///./backend/authflow.db"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def normalize_database_url(url: str) -> str:
    # Railway uses postgres:// but SQLAlchemy needs postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


@dataclass
class Settings:
    secret_key: str
    environment: str = "development"
    access_token_expire_minutes: Optional[int] = None
    refresh_token_expire_days: int = 14
    otp_expire_minutes: int = 5
    reset_token_expire_hours: int = 2
    bcrypt_rounds: int = 12
    database_url: str = DEFAULT_DATABASE_URL
    resend_api_key: Optional[str] = None
    app_name: str = "App"
    from_email: str = "noreply@example.com"
    client_base_url: str = "http://localhost:5173/"
    allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"
    sql_echo: bool = False
    reaper_interval_seconds: int = 0

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def access_token_ttl(self) -> timedelta:
        if self.access_token_expire_minutes is not None:
            return timedelta(minutes=self.access_token_expire_minutes)
        # Short-lived in production, a day elsewhere so local sessions survive restarts
        return timedelta(minutes=5) if self.is_production else timedelta(days=1)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_token_expire_days)

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.otp_expire_minutes)

    @property
    def reset_token_ttl(self) -> timedelta:
        return timedelta(hours=self.reset_token_expire_hours)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (after .env is loaded)."""
        secret_key = os.getenv("SECRET_KEY")
        if not secret_key:
            raise RuntimeError("SECRET_KEY environment variable is not set. Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\"")

        access_minutes = os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES")
        origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173")

        return cls(
            secret_key=secret_key,
            environment=os.getenv("ENVIRONMENT", "development"),
            access_token_expire_minutes=_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 0) if access_minutes else None,
            refresh_token_expire_days=_int_env("REFRESH_TOKEN_EXPIRE_DAYS", 14),
            otp_expire_minutes=_int_env("OTP_EXPIRE_MINUTES", 5),
            reset_token_expire_hours=_int_env("RESET_TOKEN_EXPIRE_HOURS", 2),
            bcrypt_rounds=_int_env("BCRYPT_ROUNDS", 12),
            database_url=normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)),
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            app_name=os.getenv("APP_NAME", "App"),
            from_email=os.getenv("FROM_EMAIL", "noreply@example.com"),
            client_base_url=os.getenv("CLIENT_BASE_URL", "http://localhost:5173/"),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            sql_echo=os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes"),
            reaper_interval_seconds=_int_env("REAPER_INTERVAL_SECONDS", 0),
        )
