"""JSONFormatter — structured log lines carry correlation ids from `extra`."""

import json
import logging
from uuid import uuid4

from datanest.infrastructure.observability import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "datanest.services.handle_purchases", logging.INFO, __file__, 1,
        "Purchase completed", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_base_fields():
    line = json.loads(JSONFormatter().format(_record()))
    assert line["level"] == "INFO"
    assert line["logger"] == "datanest.services.handle_purchases"
    assert line["message"] == "Purchase completed"
    assert "purchase_id" not in line


def test_correlation_ids_stringified():
    purchase_id = uuid4()
    line = json.loads(JSONFormatter().format(
        _record(purchase_id=purchase_id, error_code="PURCHASE_PENDING"),
    ))
    assert line["purchase_id"] == str(purchase_id)
    assert line["error_code"] == "PURCHASE_PENDING"


def test_unknown_extras_ignored():
    line = json.loads(JSONFormatter().format(_record(secret_token="x")))
    assert "secret_token" not in line
