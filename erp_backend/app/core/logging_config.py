"""Structured JSON logging setup."""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter


class ErpJsonFormatter(JsonFormatter):
    """JSON formatter adding timestamp, level and service name to every record."""

    def __init__(self, *args, service: str = "erp-backend", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service


def setup_logging(level: str = "INFO", service: str = "erp-backend") -> None:
    """Route the root logger to stdout as JSON lines."""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ErpJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s", service=service))
    root.addHandler(handler)
