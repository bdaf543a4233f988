"""Application settings powered by :mod:`pydantic_settings`."""

from __future__ import annotations

from datetime import timezone, tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field
from pydantic.functional_validators import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[3]
APP_VERSION = "0.1.0"
LOCAL_TIMEZONE = "local"


def resolve_timezone(name: str) -> tzinfo | None:
    """Map a configured timezone name to ``tzinfo`` (``None`` means process local time)."""

    normalized = name.strip()
    if not normalized or normalized.lower() == LOCAL_TIMEZONE:
        return None
    if normalized.upper() in {"UTC", "Z"}:
        return timezone.utc
    return ZoneInfo(normalized)


class Settings(BaseSettings):
    """Centralized configuration for the call metrics service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    data_path: Path = Field(
        default=Path("config/conversations.example.json"),
        alias="DATA_PATH",
        description="JSON array of conversation records loaded at startup.",
    )
    server_host: str = Field(
        default="127.0.0.1",
        alias="SERVER_HOST",
        description="Interface the API server binds to.",
    )
    server_port: int = Field(
        default=3001,
        alias="SERVER_PORT",
        ge=1,
        le=65535,
        description="Port used by the public API server.",
    )
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging verbosity for the service.",
    )
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        alias="ALLOWED_ORIGINS",
        description="Allowed origins for CORS configuration.",
    )
    hour_bucket_timezone: str = Field(
        default=LOCAL_TIMEZONE,
        alias="HOUR_BUCKET_TIMEZONE",
        description="Timezone for hour-of-day time range filters ('local' or an IANA name).",
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_allowed_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("data_path", mode="before")
    @classmethod
    def _coerce_data_path(cls, value: str | Path) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = REPO_ROOT / path
        return path

    @field_validator("hour_bucket_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @property
    def hour_tzinfo(self) -> tzinfo | None:
        return resolve_timezone(self.hour_bucket_timezone)


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


__all__ = ["APP_VERSION", "Settings", "get_settings", "resolve_timezone"]
