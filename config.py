"""
Settings loaded from environment variables (+ optional .env).

One Settings object is built at startup and handed to create_app();
nothing here opens connections or reads secrets at import time.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://127.0.0.1:27017"
    database_name: str = "LifeTrackDB"

    # Outbound mail; notifications are skipped while these are unset
    email_user: Optional[str] = None
    email_password: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_starttls: bool = True

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 5001

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_password)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(override=False)
        return cls(
            database_url=_first_env("DATABASE_URL", "MONGO_URI", default=cls.database_url),
            database_name=_first_env("DATABASE_NAME", default=cls.database_name),
            email_user=_first_env("EMAIL_USER"),
            email_password=_first_env("EMAIL_PASS"),
            smtp_host=_first_env("SMTP_HOST", default=cls.smtp_host),
            smtp_port=_env_int("SMTP_PORT", cls.smtp_port),
            smtp_starttls=_env_bool("SMTP_STARTTLS", cls.smtp_starttls),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
            log_level=(_first_env("LOG_LEVEL", default=cls.log_level) or "INFO").upper(),
            port=_env_int("PORT", cls.port),
        )
