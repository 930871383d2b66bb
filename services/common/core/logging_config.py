"""
Logging Configuration
Custom JSON Logger implementation for the edge gateway.

Provides:
- CustomJsonFormatter: one JSON object per line, keyed by request id
- setup_logging: YAML dictConfig loader with ${VAR} substitution
- configure_queue_logging: Async logging so emitting never blocks a request
"""

import atexit
import json
import logging
import logging.config
import logging.handlers
import os
import queue
import string
from datetime import datetime, timezone
from typing import Optional

import yaml

from .request_context import get_environment_mode, get_request_id


class CustomJsonFormatter(logging.Formatter):
    """
    Structured JSON Formatter.

    Fields:
      - timestamp: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. uvicorn.access, gateway.proxy)
      - message: Log message
      - requestId: per-request correlation id (X-Request-ID)
      - environmentMode: development / production
    """

    STANDARD_ATTRS = {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }

    def format(self, record: logging.LogRecord) -> str:
        # Request ID resolution
        request_id = getattr(record, "requestId", None) or get_request_id()
        environment = getattr(record, "environmentMode", None) or get_environment_mode()

        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if request_id:
            log_data["requestId"] = request_id
        if environment:
            log_data["environmentMode"] = environment

        # Include extra fields
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith("_") and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: str = "logging.yml"):
    """
    Load the YAML config, substitute environment variables, and initialize logging.
    """
    if not os.path.exists(config_path):
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
        return

    with open(config_path, "r", encoding="utf-8") as f:
        # Substitute environment variables using string.Template.
        # Supports ${LOG_LEVEL} format.
        template = string.Template(f.read())

        # Default values.
        mapping = os.environ.copy()
        if "LOG_LEVEL" not in mapping:
            mapping["LOG_LEVEL"] = "INFO"

        content = template.safe_substitute(mapping)
        config = yaml.safe_load(content)
        logging.config.dictConfig(config)


_listener: Optional[logging.handlers.QueueListener] = None


def configure_queue_logging(service_name: str) -> Optional[logging.handlers.QueueListener]:
    """
    Configure async QueueLogging.

    Moves the root logger's handlers onto a listener thread so that log
    emission from request handlers is a non-blocking queue put.
    """
    global _listener

    root = logging.getLogger()
    handlers = [h for h in root.handlers if not isinstance(h, logging.handlers.QueueHandler)]
    if _listener is not None or not handlers:
        return _listener

    # 1. Queue and QueueHandler (app side).
    log_queue: queue.Queue = queue.Queue(-1)
    queue_handler = logging.handlers.QueueHandler(log_queue)

    # 2. Real handlers run on the listener thread.
    for handler in handlers:
        root.removeHandler(handler)
    listener = logging.handlers.QueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()
    atexit.register(listener.stop)

    root.addHandler(queue_handler)
    logging.getLogger(__name__).debug("Queue logging enabled for %s", service_name)

    _listener = listener
    return listener
