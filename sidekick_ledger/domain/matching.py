"""Transaction log parsing and payment reconciliation - core ledger logic"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sidekick_ledger.domain.exceptions import InvalidLogEventError, InvalidOperationError
from sidekick_ledger.domain.ledger import apply_repayment
from sidekick_ledger.domain.models import (
    AppliedPayment,
    Ledger,
    Obligation,
    ObligationKind,
    TransferDirection,
    TransferEvent,
)

MONEY_CATEGORY = "Money sending"
LOAN_MARKER = "loan"

# Log title -> (direction, payload field naming the counterparty)
TRANSFER_TITLES = {
    "Money receive": (TransferDirection.RECEIVE, "sender"),
    "Money send": (TransferDirection.SEND, "receiver"),
}

# Money received settles a loan we gave out; money sent settles a debt entry
TARGET_KIND = {
    TransferDirection.RECEIVE: ObligationKind.LOAN,
    TransferDirection.SEND: ObligationKind.DEBT,
}


@dataclass
class ReconciliationResult:
    applied: List[AppliedPayment] = field(default_factory=list)
    skipped: Counter = field(default_factory=Counter)


def normalize_log_payload(logs: Any) -> List[Dict[str, Any]]:
    """Torn returns logs keyed by log id; accept that mapping or a plain list"""
    if logs is None:
        return []
    if isinstance(logs, Mapping):
        return list(logs.values())
    return list(logs)


def parse_log_event(raw: Mapping[str, Any]) -> Optional[TransferEvent]:
    """
    Classify a raw log entry.

    Returns:
        TransferEvent for "Money sending" receive/send entries, None for anything else

    Raises:
        InvalidLogEventError: Entry is a money transfer but its payload is unusable
    """
    if raw.get("category") != MONEY_CATEGORY:
        return None

    title_info = TRANSFER_TITLES.get(raw.get("title"))
    if title_info is None:
        return None
    direction, counterparty_field = title_info

    data = raw.get("data") or {}
    counterparty = data.get(counterparty_field)
    money = data.get("money")
    timestamp = raw.get("timestamp")
    if not counterparty or not money or timestamp is None:
        raise InvalidLogEventError(f"{raw.get('title')} log is missing {counterparty_field}, money or timestamp")

    try:
        event = TransferEvent(
            direction=direction,
            counterparty_id=int(counterparty),
            amount=float(money),
            message=str(data.get("message") or ""),
            timestamp=int(timestamp),
        )
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidLogEventError(f"Malformed {raw.get('title')} log: {e}") from e

    if not math.isfinite(event.amount) or event.amount <= 0:
        raise InvalidLogEventError(f"{raw.get('title')} log has invalid amount {money!r}")
    return event


def format_amount(amount: float) -> str:
    """Whole amounts render without a decimal part so ids stay stable"""
    return str(int(amount)) if float(amount).is_integer() else repr(float(amount))


def synthetic_payment_id(event: TransferEvent) -> str:
    """Deterministic dedup key: direction, counterparty, amount and log timestamp"""
    return f"{event.direction.value}_{event.counterparty_id}_{format_amount(event.amount)}_{event.timestamp}"


def find_matching_obligation(obligations: Iterable[Obligation], event: TransferEvent) -> Optional[Obligation]:
    """First open obligation of the target kind for this counterparty, in list order"""
    kind = TARGET_KIND[event.direction]
    return next(
        (
            o
            for o in obligations
            if o.kind == kind and not o.completed and o.counterparty_id == event.counterparty_id
        ),
        None,
    )


def reconcile(ledger: Ledger, logs: Iterable[Mapping[str, Any]], now: datetime, window_start: datetime) -> ReconciliationResult:
    """
    Apply loan repayments found in transaction logs to the ledger in place.

    Steps per log entry:
    1. Ignore entries without a timestamp or older than window_start
    2. Keep "Money sending" receive/send entries whose message mentions "loan"
    3. Skip entries whose synthetic id was already processed
    4. Match the first open obligation of the target kind for the counterparty
    5. On match: apply an automatic repayment, then record the id

    Unmatched entries are NOT recorded, so a later pass can still apply them.
    Malformed entries and rejected repayments are logged and skipped without
    aborting the batch.
    """
    result = ReconciliationResult()
    cutoff = window_start.timestamp()

    for raw in logs:
        if not isinstance(raw, Mapping):
            result.skipped["malformed"] += 1
            continue

        timestamp = raw.get("timestamp")
        if not isinstance(timestamp, (int, float)) or timestamp < cutoff:
            result.skipped["stale"] += 1
            continue

        try:
            event = parse_log_event(raw)
        except InvalidLogEventError as e:
            logging.warning(f"Skipping malformed log event: {e}")
            result.skipped["malformed"] += 1
            continue

        if event is None:
            result.skipped["unrecognized"] += 1
            continue

        if LOAN_MARKER not in event.message.lower():
            result.skipped["no_marker"] += 1
            continue

        payment_id = synthetic_payment_id(event)
        if payment_id in ledger.processed_payments:
            result.skipped["duplicate"] += 1
            continue

        obligation = find_matching_obligation(ledger.obligations, event)
        if obligation is None:
            logging.info(
                "No open obligation matches transfer",
                extra={"payment_id": payment_id, "counterparty_id": event.counterparty_id},
            )
            result.skipped["unmatched"] += 1
            continue

        try:
            apply_repayment(
                obligation,
                event.amount,
                now,
                note=f"auto-detected: {event.message}",
                automatic=True,
            )
        except InvalidOperationError as e:
            logging.warning(f"Skipping transfer {payment_id}: {e}")
            result.skipped["malformed"] += 1
            continue

        ledger.processed_payments.add(payment_id)
        result.applied.append(
            AppliedPayment(
                payment_id=payment_id,
                obligation_id=obligation.id,
                counterparty_name=obligation.counterparty_name,
                direction=event.direction,
                amount=event.amount,
                completed=obligation.completed,
            )
        )

    return result
