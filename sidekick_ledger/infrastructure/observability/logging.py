"""Structured JSON logging for the ledger service"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from pythonjsonlogger import jsonlogger

from sidekick_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds timestamp, level and service name to every record"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger to stdout as JSON lines"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)


def log_repayment(
    obligation_id: str,
    counterparty_name: str,
    amount: float,
    automatic: bool,
    completed: bool,
    payment_id: str | None = None,
) -> None:
    """Audit line for every repayment, manual or detected from the Torn log"""
    logging.info(
        "Repayment applied",
        extra={
            "obligation_id": obligation_id,
            "counterparty_name": counterparty_name,
            "step": "repayment_applied",
            "source": "automatic" if automatic else "manual",
            "amount": amount,
            "completed": completed,
            "payment_id": payment_id,
        },
    )


def log_reconciliation(events: int, applied: int, skipped: Mapping[str, int]) -> None:
    logging.info(
        f"Processed {events} logs, applied {applied} repayments",
        extra={"step": "reconciliation", "events": events, "applied": applied, "skipped": dict(skipped)},
    )
