"""
Structured logging for the import service.

Every record is one JSON line. Besides the message and its source location
a line carries the ``request_id`` of the HTTP request being served (from
``X-Request-ID``, or "GLOBAL" outside a request) and the ``session_id`` of
the review session (``X-Session-ID``), so an upload and the commit that
follows it can be read back together. Keyword arguments given to a logger
call (``file_name``, ``line``, ``records``, ``duplicate_of`` ...) are merged
into the same object.
"""
import logging
import json
import os
import datetime
from typing import Any, Optional
from threading import local

NO_REQUEST = "GLOBAL"

# Per-thread request_id and session_id of the request being served
_context = local()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "request_id": get_request_id(),
        }
        session_id = getattr(_context, "session_id", None)
        if session_id:
            log_data["session_id"] = session_id

        # Call-site fields win over the location fields ("line" is a statement line there)
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimal amounts and dates are written as text
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(log_level: int = logging.INFO, log_file: Optional[str] = None):
    """
    Route the root logger to JSON lines on stderr, plus ``log_file``
    (``BANK_RECON_LOG_FILE``) when one is configured.
    """
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if root_logger.handlers:
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    logging.info("Import service logging ready.",
                 extra={"extra_fields": {"level": logging.getLevelName(log_level), "log_file": log_file}})


def set_request_id(request_id: str, session_id: Optional[str] = None):
    """Bind the current thread's log lines to a request and, optionally, a review session."""
    _context.request_id = request_id
    _context.session_id = session_id


def get_request_id() -> str:
    return getattr(_context, "request_id", None) or NO_REQUEST


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that moves keyword arguments into structured fields:

        logger.warning("Record skipped.", file_name="выписка.txt", line=14)
    """
    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = kwargs.get("extra", {})
        if "extra_fields" not in extra:
            extra["extra_fields"] = {}

        standard_args = {'exc_info', 'stack_info', 'stacklevel', 'extra'}
        new_kwargs = {}
        for key, value in kwargs.items():
            if key in standard_args:
                new_kwargs[key] = value
            else:
                extra["extra_fields"][key] = value

        new_kwargs["extra"] = extra
        return msg, new_kwargs


def get_logger(name: str) -> StructuredLoggerAdapter:
    return StructuredLoggerAdapter(logging.getLogger(name), {})
