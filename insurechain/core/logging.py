"""Logging configuration.

Every record is one JSON line. Request, audit and ledger context passed via
``extra=`` is lifted into top-level keys so log pipelines can filter on
``action``, ``status`` or ``tx_hash`` without parsing the message.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Chatty at INFO/DEBUG: web3 logs every provider request, httpx every call
NOISY_LOGGERS = ("web3", "urllib3", "httpx", "httpcore", "aiohttp.access")


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    EXTRA_FIELDS = (
        "request_id",
        "route",
        "method",
        "status",
        "action",
        "principal",
        "resource",
        "details",
        "tx_hash",
        "cid",
    )

    def format(self, record):
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in self.EXTRA_FIELDS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    log_file: str = None,
    log_level: str = None,
    library_log_level: str = None,
):
    """Configure root logging with the JSON formatter.

    Args:
        log_file: Path to log file. Defaults to INSURECHAIN_LOG_FILE env var.
            An empty value disables the file handler.
        log_level: Log level. Defaults to INSURECHAIN_LOG_LEVEL env var or 'INFO'.
        library_log_level: Level for the client libraries in NOISY_LOGGERS.
            Defaults to INSURECHAIN_LIBRARY_LOG_LEVEL env var or 'WARNING'.
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonFormatter())
    handlers = [console_handler]

    log_file = log_file if log_file is not None else os.getenv("INSURECHAIN_LOG_FILE", "insurechain.log")
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setFormatter(JsonFormatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    log_level = log_level or os.getenv("INSURECHAIN_LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.handlers = handlers

    library_log_level = library_log_level or os.getenv("INSURECHAIN_LIBRARY_LOG_LEVEL", "WARNING").upper()
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, library_log_level, logging.WARNING))
