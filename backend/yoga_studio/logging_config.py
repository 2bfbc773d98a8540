"""
Logging configuration for the booking API.

Plain text for local development, single-line JSON (one object per record)
when LOG_JSON is set, so logs can be filtered with jq in production.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    # attributes every LogRecord carries; anything else came in through extra={}
    _STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'pathname', 'process', 'processName', 'relativeCreated',
        'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
        'taskName',
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for attr_name, attr_value in record.__dict__.items():
            if attr_name in self._STANDARD_ATTRS or attr_name in log_data:
                continue
            # Only include serializable types
            if isinstance(attr_value, (str, int, float, bool, type(None), dict, list)):
                log_data[attr_name] = attr_value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install a single stderr handler on the root logger."""
    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    handler.set_name("yoga_studio")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "yoga_studio":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
