"""Logging setup for the API server and CLI.

Log lines can carry the API token (``Authorization`` headers, ``api_token``
query strings) and the hosted database key (``apikey`` headers), so every
handler installed here runs a :class:`SensitiveDataFilter` first.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from stockpot.config import Settings

REDACTED = "[redacted]"

# (pattern, group kept in front of the redacted value)
_TOKEN_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/=]+", re.IGNORECASE),
    re.compile(r"(api_token=)[^&\s]+", re.IGNORECASE),
    re.compile(r"(['\"]?apikey['\"]?\s*[:=]\s*['\"]?)[^'\"&\s,}]+", re.IGNORECASE),
)

# Fields passed through ``extra=`` that JSON lines keep as top-level keys.
STRUCTURED_FIELDS = ("request_id", "inventory_id", "recipe_id", "dish_name", "order_type")

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def redact(text: str, secrets: Sequence[str] = ()) -> str:
    """Mask token-shaped substrings and any literal secret in ``text``."""

    for pattern in _TOKEN_PATTERNS:
        text = pattern.sub(r"\g<1>" + REDACTED, text)
    for secret in secrets:
        text = text.replace(secret, REDACTED)
    return text


class SensitiveDataFilter(logging.Filter):
    """Redact the API token and hosted API key from messages and string attributes."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self.secrets: list[str] = sorted(
            {secret.strip() for secret in secrets if secret and secret.strip()},
            key=len,
            reverse=True,
        )

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard interface
        message = record.getMessage()
        cleaned = redact(message, self.secrets)
        if cleaned != message:
            record.msg = cleaned
            record.args = ()

        if self.secrets:
            for key, value in list(vars(record).items()):
                if key != "msg" and isinstance(value, str):
                    setattr(record, key, redact(value, self.secrets))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line with the structured ``extra`` fields lifted out."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field))
            for field in STRUCTURED_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Replace the root handlers with one redacting stream handler."""

    level = getattr(logging, level_name.upper(), logging.INFO)
    redactor = SensitiveDataFilter(secrets)

    handler = logging.StreamHandler()
    if (fmt or "plain").lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handler.addFilter(redactor)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    logging.captureWarnings(True)

    # httpx logs full request URLs at INFO, which include hosted query filters.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.setLevel(level)
        server_logger.propagate = True
        server_logger.addFilter(redactor)


def configure_from_settings(settings: "Settings") -> None:
    """Configure logging from settings, redacting the API token and hosted API key."""

    configure_logging(
        settings.log_level,
        settings.log_format,
        [settings.api_token or "", settings.hosted_api_key or ""],
    )


__all__ = [
    "REDACTED",
    "STRUCTURED_FIELDS",
    "SensitiveDataFilter",
    "JsonFormatter",
    "redact",
    "configure_logging",
    "configure_from_settings",
]
