"""Obligation creation and balance mutations"""

import math
import uuid
from datetime import datetime
from typing import Optional

from sidekick_ledger.domain.exceptions import InvalidOperationError
from sidekick_ledger.domain.models import (
    COMPLETION_EPSILON,
    EntryKind,
    InterestPolicy,
    Obligation,
    ObligationKind,
    Repayment,
    placeholder_name,
)


def new_obligation_id(kind: ObligationKind, now: datetime) -> str:
    return f"{kind.value}_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


def build_obligation(
    kind: ObligationKind,
    counterparty_id: Optional[int],
    counterparty_name: Optional[str],
    principal: float,
    interest_policy: InterestPolicy,
    now: datetime,
    notes: str = "",
    due_at: Optional[datetime] = None,
) -> Obligation:
    """Validate inputs and build a fresh obligation with balance == principal"""
    if not math.isfinite(principal) or principal <= 0:
        raise InvalidOperationError("Principal must be positive")
    if interest_policy.rate < 0:
        raise InvalidOperationError("Interest rate cannot be negative")

    return Obligation(
        id=new_obligation_id(kind, now),
        kind=kind,
        counterparty_id=counterparty_id,
        counterparty_name=counterparty_name or placeholder_name(counterparty_id),
        principal=float(principal),
        current_balance=float(principal),
        interest_policy=interest_policy,
        created_at=now,
        last_interest_applied_at=now,
        notes=notes,
        due_at=due_at,
    )


def mark_completed(obligation: Obligation, now: datetime) -> bool:
    """Complete an obligation. Returns False if it was already completed."""
    if obligation.completed:
        return False
    obligation.completed = True
    obligation.completed_at = now
    return True


def apply_repayment(
    obligation: Obligation,
    amount: float,
    now: datetime,
    note: str = "",
    automatic: bool = False,
) -> Repayment:
    """
    Record a repayment and reduce the outstanding balance.

    The balance floors at zero. An obligation whose balance drops to
    COMPLETION_EPSILON or below is completed.

    Raises:
        InvalidOperationError: Non-positive or non-finite amount or obligation already completed
    """
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidOperationError("Repayment amount must be a positive number")
    if obligation.completed:
        raise InvalidOperationError(f"Obligation {obligation.id} is already completed")

    repayment = Repayment(amount=float(amount), timestamp=now, note=note, automatic=automatic)
    obligation.repayments.append(repayment)
    obligation.current_balance = max(0.0, obligation.current_balance - amount)

    if obligation.current_balance <= COMPLETION_EPSILON:
        mark_completed(obligation, now)

    return repayment


def increase_principal(obligation: Obligation, amount: float, now: datetime) -> Repayment:
    """
    Lend more money on an existing loan.

        InvalidOperationError: Obligation is a debt, completed, or amount is not a positive number
        InvalidOperationError: Obligation is a debt, completed, or amount is not positive
    """
    if obligation.kind != ObligationKind.LOAN:
        raise InvalidOperationError("Can only increase loan amounts, not debt amounts")
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidOperationError("Increase amount must be a positive number")
    if obligation.completed:
        raise InvalidOperationError(f"Obligation {obligation.id} is already completed")

    obligation.principal += amount
    obligation.current_balance += amount

    entry = Repayment(
        amount=float(amount),
        timestamp=now,
        note="Loan amount increased",
        kind=EntryKind.INCREASE,
    )
    obligation.repayments.append(entry)
    return entry
