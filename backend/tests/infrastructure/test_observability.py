"""Structured Logging — JSONFormatter output shape."""

import json
import logging

from statusboard.infrastructure.observability import JSONFormatter


def _record(**extra):
    record = logging.LogRecord(
        "statusboard.services.refresh_pipeline", logging.WARNING, __file__, 1,
        "Source skipped: %s", ("boom",), None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_base_fields():
    log = json.loads(JSONFormatter().format(_record()))
    assert log["level"] == "WARNING"
    assert log["logger"] == "statusboard.services.refresh_pipeline"
    assert log["message"] == "Source skipped: boom"
    assert "timestamp" in log
    assert "source_id" not in log


def test_json_formatter_surfaces_extra_fields():
    log = json.loads(JSONFormatter().format(
        _record(source_id="db-1", generation=4, error_code="SOURCE_UNAVAILABLE"),
    ))
    assert log["source_id"] == "db-1"
    assert log["generation"] == 4
    assert log["error_code"] == "SOURCE_UNAVAILABLE"
