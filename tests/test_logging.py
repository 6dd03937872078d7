import json
import logging

import pytest

from routeguard.utils.logging import JsonFormatter, bind_logger


def test_json_formatter_lifts_guard_context() -> None:
    record = logging.LogRecord("routeguard.test", logging.INFO, __file__, 1, "guard decision", None, None)
    record.path = "/reports"
    record.decision = "allowAccess"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "guard decision"
    assert payload["path"] == "/reports"
    assert payload["decision"] == "allowAccess"
    assert "behave" not in payload


def test_bound_logger_tags_records(caplog: pytest.LogCaptureFixture) -> None:
    logger = bind_logger("routeguard.test", session_id="abc")
    with caplog.at_level(logging.INFO, logger="routeguard.test"):
        logger.info("navigation vetoed", extra={"path": "/x"})
    record = caplog.records[-1]
    assert record.session_id == "abc"
    assert record.path == "/x"
