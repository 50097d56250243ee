import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return int(raw_value)


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./shortener.db")
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-in-production")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_days: int = _env_int("ACCESS_TOKEN_EXPIRE_DAYS", 7)
    otp_length: int = _env_int("OTP_LENGTH", 6)
    otp_ttl_minutes: int = _env_int("OTP_TTL_MINUTES", 10)
    otp_sweep_interval_seconds: int = _env_int("OTP_SWEEP_INTERVAL_SECONDS", 60)
    email_user: str = os.getenv("EMAIL_USER", "")
    email_pass: str = os.getenv("EMAIL_PASS", "")
    email_host: str = os.getenv("EMAIL_HOST", "smtp.gmail.com")
    email_port: int = _env_int("EMAIL_PORT", 465)
    email_timeout_seconds: int = _env_int("EMAIL_TIMEOUT_SECONDS", 10)
    admin_links_max_limit: int = _env_int("ADMIN_LINKS_MAX_LIMIT", 100)
    admin_secret_key: str = os.getenv("ADMIN_SECRET_KEY", "")
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
    client_fallback_url: str = os.getenv(
        "CLIENT_FALLBACK_URL", "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    cors_origins: tuple[str, ...] = _env_list(
        "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    )

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_pass)


settings = Settings()
