"""
Unit tests for log redaction and JSON formatting.
"""

import json
import logging

from infrastructure.logging_config import JSONFormatter, SensitiveDataFilter


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_redacts_oauth_code_and_state():
    record = _record("GET %s", "/api/v1/integrations/ga4/callback?code=abc123&state=xyz")
    SensitiveDataFilter().filter(record)

    message = record.getMessage()
    assert "abc123" not in message
    assert "xyz" not in message
    assert "code=[REDACTED]" in message


def test_redacts_bearer_tokens_in_args():
    record = _record("header %s", "Authorization: Bearer sk-live-123")
    SensitiveDataFilter().filter(record)
    assert "sk-live-123" not in record.getMessage()


def test_json_formatter_includes_extra_fields():
    record = _record("Synced %s metrics", "stripe", provider="stripe", account_id="acc-1")
    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "Synced stripe metrics"
    assert data["level"] == "INFO"
    assert data["provider"] == "stripe"
    assert data["account_id"] == "acc-1"
    assert "plan" not in data
