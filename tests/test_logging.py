import json
import logging

from backend.core.logging import JsonFormatter, RequestIdFilter, reset_request_id, set_request_id


def _record(message="hello %s", args=("fleet",)):
    return logging.LogRecord("fleet.test", logging.INFO, __file__, 1, message, args, None)


def test_request_id_filter_uses_context():
    record = _record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"

    token = set_request_id("req-42")
    try:
        record = _record()
        RequestIdFilter().filter(record)
        assert record.request_id == "req-42"
    finally:
        reset_request_id(token)


def test_json_formatter_emits_one_object_per_record():
    record = _record()
    record.request_id = "req-1"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "hello fleet"
    assert payload["level"] == "INFO"
    assert payload["name"] == "fleet.test"
    assert payload["request_id"] == "req-1"
