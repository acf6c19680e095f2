"""Unit tests for the JSON log formatter."""

from __future__ import annotations

import json
import logging

from session_auth.core.logger import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="session_auth.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="refresh.rejected",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_fields_are_emitted():
    line = JSONFormatter().format(_record(reason="expired", user_id=3, fp="abcd1234", request_id="r1"))

    payload = json.loads(line)
    assert payload["message"] == "refresh.rejected"
    assert payload["level"] == "WARNING"
    assert payload["reason"] == "expired"
    assert payload["user_id"] == 3
    assert payload["fp"] == "abcd1234"
    assert payload["request_id"] == "r1"


def test_unknown_extras_are_not_emitted():
    payload = json.loads(JSONFormatter().format(_record(secret="do-not-log")))

    assert "secret" not in payload
