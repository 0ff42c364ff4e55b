"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from cheque_clearance.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


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


def log_transition(
    request_id: Optional[str],
    instrument_id: str,
    from_status: Optional[str],
    to_status: str,
    acting_user: str,
    duration_ms: float,
) -> None:
    """Log a committed status change for audit dashboards"""
    logging.info(
        "Cheque status committed",
        extra={
            "request_id": request_id,
            "instrument_id": instrument_id,
            "step": "transition_committed",
            "from_status": from_status,
            "to_status": to_status,
            "acting_user": acting_user,
            "duration_ms": duration_ms,
        },
    )


def log_degraded_read(order_id: str, reason: str) -> None:
    """Log a batch row that fell back to the default projection"""
    logging.warning(
        "Status snapshot unavailable, using default projection",
        extra={
            "order_id": order_id,
            "step": "status_fetch_degraded",
            "reason": reason,
        },
    )
