"""
logging_config.py - JSON Logging Configuration

Structured JSON logs on stdout for the storefront admin service. Every record
carries a timestamp in the configured application timezone, its level, the
originating logger and the message. ``service_name`` is injected by a filter
installed in ``setup_logging``; ``correlation_id`` is included when a caller
attaches one through ``extra=``.

Example output:
    {
        "timestamp": "2026-02-23T22:48:51.001014-08:00",
        "level": "INFO",
        "logger": "storefront_admin.order_workflow",
        "message": "Created order ORD-7QK2ZD-20260223 for user 4",
        "service_name": "storefront-admin"
    }
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict
from zoneinfo import ZoneInfo

from storefront_admin.config import settings


class JsonFormatter(logging.Formatter):
    """Custom formatter that outputs JSON logs with correlation context."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(ZoneInfo(settings.app_timezone)).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "correlation_id"):
            log_data["correlation_id"] = record.correlation_id
        if hasattr(record, "service_name"):
            log_data["service_name"] = record.service_name

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ServiceFilter(logging.Filter):
    """Stamp every record with the owning service name."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        return True


def setup_logging(service_name: str, level: str = "INFO") -> None:
    """Setup JSON logging for a service."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(ServiceFilter(service_name))

    logger = logging.getLogger()
    logger.setLevel(level)
    logger.addHandler(handler)
