"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from taxi_loans.config import settings


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


def log_funding(request_id: str, loan_id: str, principal_cents: int, total_cents: int, weekly_cents: int) -> None:
    """Log structured funding outcome"""
    logging.info(
        "Loan funded",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "step": "loan_funded",
            "principal_cents": principal_cents,
            "total_cents": total_cents,
            "weekly_payment_cents": weekly_cents,
        },
    )


def log_payment(
    request_id: str,
    loan_id: str,
    amount_cents: int,
    balance_after_cents: int,
    terms_remaining: int,
    overpayment_cents: int,
) -> None:
    """Log structured payment outcome; absorbed overpayment is flagged for follow-up"""
    level = logging.WARNING if overpayment_cents else logging.INFO
    logging.log(
        level,
        "Payment recorded",
        extra={
            "request_id": request_id,
            "loan_id": loan_id,
            "step": "payment_recorded",
            "amount_cents": amount_cents,
            "balance_after_cents": balance_after_cents,
            "terms_remaining": terms_remaining,
            "payment_outcome": "paid_off" if balance_after_cents == 0 else "partial",
            "overpayment_cents": overpayment_cents,
        },
    )
