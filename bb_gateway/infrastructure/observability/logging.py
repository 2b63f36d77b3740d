"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Mapping
from pythonjsonlogger import jsonlogger

REDACTED = "[REDACTED]"
SENSITIVE_HEADERS = frozenset({"authorization", "gw-dev-app-key", "x-application-key"})


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "bb-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Copy of headers safe to log: tokens and application keys masked"""
    redacted = {}
    for name, value in headers.items():
        if name.lower() not in SENSITIVE_HEADERS:
            redacted[name] = value
        elif name.lower() == "authorization" and str(value).startswith("Bearer "):
            redacted[name] = f"Bearer {REDACTED}"
        else:
            redacted[name] = REDACTED
    return redacted


def log_statement_fetch(
    wallet_id: str,
    pages: int,
    item_count: int,
    total_record_count: int,
    balance_found: bool,
    duration_ms: float,
) -> None:
    """Log structured statement fetch outcome"""
    logging.info(
        "Statement fetch completed",
        extra={
            "wallet_id": wallet_id,
            "step": "statement_complete",
            "pages": pages,
            "item_count": item_count,
            "total_record_count": total_record_count,
            "complete": item_count == total_record_count,
            "balance_found": balance_found,
            "duration_ms": duration_ms,
        },
    )
