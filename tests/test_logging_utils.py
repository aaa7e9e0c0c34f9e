"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from stockpot.config import Settings
from stockpot.logging_utils import REDACTED, configure_from_settings, configure_logging, redact


def _emit(record: logging.LogRecord) -> str:
    handler = logging.getLogger().handlers[0]
    for filter_ in handler.filters:
        filter_.filter(record)
    return handler.format(record)


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    record = logging.LogRecord(
        name="stockpot.test.redaction",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="Authorization header Bearer %s",
        args=(secret,),
        exc_info=None,
    )

    formatted = _emit(record)
    assert secret not in formatted
    assert "[redacted]" in formatted


def test_hosted_api_key_is_redacted_from_headers():
    configure_logging("INFO", "plain", ["service-role-key"])

    record = logging.LogRecord(
        name="stockpot.storage.hosted",
        level=logging.ERROR,
        pathname=__file__,
        lineno=0,
        msg="request headers {'apikey': 'service-role-key'}",
        args=(),
        exc_info=None,
    )

    assert "service-role-key" not in _emit(record)


def test_json_format_includes_structured_fields():
    configure_logging("INFO", "json", [])

    record = logging.LogRecord(
        name="stockpot.fulfillment.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="Fulfilled recipe",
        args=(),
        exc_info=None,
    )
    record.recipe_id = 3
    record.dish_name = "Garlic Bread"

    payload = json.loads(_emit(record))
    assert payload["message"] == "Fulfilled recipe"
    assert payload["recipe_id"] == 3
    assert payload["dish_name"] == "Garlic Bread"
    assert payload["level"] == "INFO"


def test_redact_masks_query_tokens_and_literal_secrets():
    text = "GET /inventory?api_token=abc123&x=1 key=hosted-key"

    cleaned = redact(text, ["hosted-key"])

    assert "abc123" not in cleaned
    assert "hosted-key" not in cleaned
    assert cleaned.count(REDACTED) == 2


def test_configure_from_settings_redacts_both_secrets():
    settings = Settings(api_token="api-secret", hosted_api_key="hosted-secret", log_format="plain")
    configure_from_settings(settings)

    record = logging.LogRecord(
        name="stockpot.cli",
        level=logging.WARNING,
        pathname=__file__,
        lineno=0,
        msg="token=%s key=%s",
        args=("api-secret", "hosted-secret"),
        exc_info=None,
    )

    formatted = _emit(record)
    assert "api-secret" not in formatted
    assert "hosted-secret" not in formatted
    assert logging.getLogger().level == logging.INFO
