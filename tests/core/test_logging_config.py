"""Tests: JSON log lines carry the entity and operation context."""

import json
import logging
from decimal import Decimal

from core.logging_config import JsonFormatter, configure_logging


def _record(**extra):
    record = logging.LogRecord("services.campaign_review", logging.ERROR, __file__, 10,
                               "Campaign %s failed", ("c1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_fields_are_included():
    line = json.loads(JsonFormatter().format(_record(entity_id="c1", operation="approve")))

    assert line["message"] == "Campaign c1 failed"
    assert line["level"] == "ERROR"
    assert line["entity_id"] == "c1"
    assert line["operation"] == "approve"


def test_missing_context_is_omitted():
    line = json.loads(JsonFormatter().format(_record()))

    assert "entity_id" not in line
    assert "operation" not in line


def test_logger_name_and_decimal_values():
    record = _record(entity_id=Decimal("250.00"))

    line = json.loads(JsonFormatter().format(record))

    assert line["logger"] == "services.campaign_review"
    assert line["entity_id"] == "250.00"


def test_configure_logging_quiets_sdk_loggers():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        configure_logging()

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("stripe").level == logging.WARNING
    finally:
        root.handlers = saved[0]
        root.setLevel(saved[1])
