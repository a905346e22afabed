import json
import logging

from shopcrm.core.logging_config import (
    REDACTED, SecurityFilter, StructuredFormatter, current_context, reset_request_context, set_request_context,
)


def make_record(extra_fields=None):
    record = logging.LogRecord("shopcrm.test", logging.INFO, __file__, 10, "Order placed", None, None)
    if extra_fields is not None:
        record.extra_fields = extra_fields
    return record


def test_formatter_emits_json_with_trace_and_custom_fields():
    reset_request_context()
    set_request_context(request_id="req-1", user_id="customer:7")
    try:
        payload = json.loads(StructuredFormatter().format(make_record({"order_id": 7})))
    finally:
        reset_request_context()

    assert payload["message"] == "Order placed"
    assert payload["level"] == "INFO"
    assert payload["custom"] == {"order_id": 7}
    assert payload["trace"] == {"request_id": "req-1", "user": "customer:7"}
    assert payload["location"].endswith(":10")


def test_context_updates_merge():
    reset_request_context()
    set_request_context(request_id="req-2")
    set_request_context(user_id="admin:1")
    assert current_context().request_id == "req-2"
    assert current_context().user == "admin:1"
    reset_request_context()
    assert current_context().as_trace() is None


def test_security_filter_redacts_nested_secrets():
    record = make_record({
        "smtp_pass": "hunter2",
        "email": "a@example.com",
        "changes": {"Password": "x", "currency": "jpy"},
        "rows": [{"token": "abc"}],
    })

    assert SecurityFilter().filter(record)
    assert record.extra_fields == {
        "smtp_pass": REDACTED,
        "email": "a@example.com",
        "changes": {"Password": REDACTED, "currency": "jpy"},
        "rows": [{"token": REDACTED}],
    }
