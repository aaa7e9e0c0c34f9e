"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))

StorageBackendName = Literal["memory", "sqlalchemy", "hosted"]


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    storage_backend: StorageBackendName = Field(
        default="sqlalchemy",
        description="Persistence backend (memory/sqlalchemy/hosted).",
    )
    database_path: Path = Field(
        default=Path("./data/stockpot.db"),
        description="SQLite database location used when no database URL is set.",
    )
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL; overrides database_path when set.",
    )
    seed_demo_data: bool = Field(
        default=False,
        description="Seed demo inventory and recipes into an empty store on startup.",
    )
    hosted_url: Optional[str] = Field(
        default=None,
        description="Base URL of the hosted database REST API (e.g. https://xyz.supabase.co).",
    )
    hosted_api_key: Optional[str] = Field(
        default=None,
        description="API key sent to the hosted database service.",
    )
    hosted_schema: str = Field(
        default="public",
        description="Database schema exposed by the hosted REST API.",
    )
    storage_timeout: float = Field(
        default=10.0,
        description="Seconds before a storage backend call is abandoned.",
    )
    cas_max_retries: int = Field(
        default=5,
        description="Compare-and-swap attempts for hosted stock adjustments.",
    )
    notify_webhook_url: Optional[str] = Field(
        default=None,
        description="Optional webhook that receives every dispatched notification.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token required for authenticated endpoints.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )

    model_config = ConfigDict(frozen=True)

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (backend := _env("STOCKPOT_STORAGE_BACKEND")):
        payload["storage_backend"] = backend.strip().lower()
    if (db_path := _env("STOCKPOT_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (db_url := _env("STOCKPOT_DATABASE_URL")):
        payload["database_url"] = db_url
    if (seed := _env("STOCKPOT_SEED_DEMO_DATA")):
        payload["seed_demo_data"] = _coerce_bool(seed)
    if (hosted_url := _env("STOCKPOT_HOSTED_URL")):
        payload["hosted_url"] = hosted_url
    if (hosted_key := _env("STOCKPOT_HOSTED_API_KEY")):
        payload["hosted_api_key"] = hosted_key
    if (hosted_schema := _env("STOCKPOT_HOSTED_SCHEMA")):
        payload["hosted_schema"] = hosted_schema
    if (timeout := _env("STOCKPOT_STORAGE_TIMEOUT")):
        try:
            payload["storage_timeout"] = float(timeout)
        except ValueError:
            pass
    if (retries := _env("STOCKPOT_CAS_MAX_RETRIES")):
        try:
            payload["cas_max_retries"] = int(retries)
        except ValueError:
            pass
    if (webhook := _env("STOCKPOT_NOTIFY_WEBHOOK_URL")):
        payload["notify_webhook_url"] = webhook
    if (api_token := _env("STOCKPOT_API_TOKEN")):
        payload["api_token"] = api_token
    if (log_level := _env("STOCKPOT_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("STOCKPOT_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("STOCKPOT_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
