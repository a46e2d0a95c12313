import logging
import json
import math
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from trafficnav.core.config import settings

# Attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRS = set(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {"message", "asctime"}

def _jsonable(value: Any) -> Any:
    # Unreachable costs are +inf, which json.dumps would emit as invalid JSON
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value

class JsonFormatter(logging.Formatter):
    """
    One JSON object per record. Fields passed through ``extra`` (edge ids,
    algorithm names, node counts...) are grouped under ``context``.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineNo": record.lineno,
        }

        context = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if context:
            log_record["context"] = context

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)

def get_logger(name: str, level: Optional[str] = None):
    logger = logging.getLogger(name)

    # Configured on first use only
    if logger.handlers:
        return logger

    logger.setLevel(level or settings.LOG_LEVEL)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger
