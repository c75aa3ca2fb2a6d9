import json
import logging

from storefront_admin.logging_config import JsonFormatter, ServiceFilter


def make_record(**extra):
    record = logging.LogRecord(
        name="storefront_admin.order_workflow",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="Created order %s",
        args=("ORD-ABC123-20260115",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_record_as_json():
    record = make_record(correlation_id="req-1")
    ServiceFilter("storefront-admin").filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "storefront_admin.order_workflow"
    assert payload["message"] == "Created order ORD-ABC123-20260115"
    assert payload["service_name"] == "storefront-admin"
    assert payload["correlation_id"] == "req-1"
    assert "timestamp" in payload


def test_includes_exception():
    try:
        raise ValueError("bad stock")
    except ValueError:
        import sys

        record = make_record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "ValueError: bad stock" in payload["exception"]
