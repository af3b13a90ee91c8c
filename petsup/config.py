"""Application configuration using Pydantic BaseSettings.

Everything is read from PETSUP_* environment variables or a .env file at the
project root. Nothing else in the code base reads os.environ.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_DEFAULT_ORIGINS: list[str] = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def _resolve_env_file() -> str | None:
    """Resolve .env relative to the project root (parent of petsup/)."""
    path = Path(__file__).resolve().parent.parent / ".env"
    return str(path) if path.exists() else None


@dataclass(frozen=True)
class MailSettings:
    """SMTP configuration handed to the mailer at startup."""
    host: str
    port: int
    user: str
    password: str
    from_address: str
    from_name: str

    @property
    def configured(self) -> bool:
        return bool(self.user and self.password)


class Settings(BaseSettings):
    """PetSup settings. Loaded from env and .env."""

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file(),
        env_file_encoding="utf-8",
        env_prefix="PETSUP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Use PostgreSQL in production, SQLite locally
    database_url: str = "sqlite:///./petsup.db"
    log_level: str = "INFO"

    secret_key: str = "change-me-in-production"
    """Secret key for signing access tokens. Set PETSUP_SECRET_KEY in production."""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    recovery_code_ttl_minutes: int = 15
    """How long a password-recovery code stays valid."""

    # NoDecode hands the raw env string to parse_allowed_origins
    allowed_origins: Annotated[list[str], NoDecode] = _DEFAULT_ORIGINS

    # SMTP delivery; sending is skipped while user/password are empty
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from: str = ""
    mail_from_name: str = "PetSup - Adoção de Pets"

    @field_validator("database_url")
    @classmethod
    def fix_postgres_scheme(cls, v: str) -> str:
        # Render/Heroku hand out postgres:// but SQLAlchemy needs postgresql://
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: Any) -> list[str]:
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if isinstance(v, str):
            raw = v.strip()
            if not raw:
                return _DEFAULT_ORIGINS
            if raw.startswith("["):
                try:
                    parsed: list[str] = json.loads(raw)
                    return [str(x).strip() for x in parsed if str(x).strip()]
                except json.JSONDecodeError:
                    pass
            return [x.strip() for x in raw.split(",") if x.strip()]
        return _DEFAULT_ORIGINS

    def mail_settings(self) -> MailSettings:
        return MailSettings(
            host=self.smtp_host,
            port=self.smtp_port,
            user=self.smtp_user,
            password=self.smtp_password,
            from_address=self.mail_from or self.smtp_user,
            from_name=self.mail_from_name,
        )


def get_settings() -> Settings:
    """Return application settings."""
    return Settings()


settings = get_settings()
