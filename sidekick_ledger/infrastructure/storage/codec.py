"""Pydantic schemas for the persisted ledger document"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from sidekick_ledger.domain.models import (
    EntryKind,
    InterestKind,
    InterestPolicy,
    Ledger,
    Obligation,
    ObligationKind,
    Repayment,
)


class StoredModel(BaseModel):
    """camelCase on disk, snake_case in code"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InterestPolicyRecord(StoredModel):
    kind: InterestKind = InterestKind.NONE
    rate: float = Field(default=0.0, ge=0)


class RepaymentRecord(StoredModel):
    amount: float
    timestamp: datetime
    note: str = ""
    automatic: bool = False
    kind: EntryKind = EntryKind.REPAYMENT


class ObligationRecord(StoredModel):
    id: str
    kind: ObligationKind
    counterparty_id: Optional[int] = None
    counterparty_name: str
    principal: float = Field(gt=0)
    current_balance: float = Field(ge=0)
    interest_policy: InterestPolicyRecord = Field(default_factory=InterestPolicyRecord)
    created_at: datetime
    last_interest_applied_at: datetime
    notes: str = ""
    due_at: Optional[datetime] = None
    frozen: bool = False
    repayments: List[RepaymentRecord] = Field(default_factory=list)
    completed: bool = False
    completed_at: Optional[datetime] = None
    last_action_at: Optional[datetime] = None
    last_action_fetched_at: Optional[datetime] = None


class LedgerRecord(StoredModel):
    obligations: List[ObligationRecord] = Field(default_factory=list)
    processed_payments: List[str] = Field(default_factory=list)


def _to_domain(record: ObligationRecord) -> Obligation:
    return Obligation(
        id=record.id,
        kind=record.kind,
        counterparty_id=record.counterparty_id,
        counterparty_name=record.counterparty_name,
        principal=record.principal,
        current_balance=record.current_balance,
        interest_policy=InterestPolicy(kind=record.interest_policy.kind, rate=record.interest_policy.rate),
        created_at=record.created_at,
        last_interest_applied_at=record.last_interest_applied_at,
        notes=record.notes,
        due_at=record.due_at,
        frozen=record.frozen,
        repayments=[
            Repayment(amount=r.amount, timestamp=r.timestamp, note=r.note, automatic=r.automatic, kind=r.kind)
            for r in record.repayments
        ],
        completed=record.completed,
        completed_at=record.completed_at,
        last_action_at=record.last_action_at,
        last_action_fetched_at=record.last_action_fetched_at,
    )


def _to_record(obligation: Obligation) -> ObligationRecord:
    return ObligationRecord(
        id=obligation.id,
        kind=obligation.kind,
        counterparty_id=obligation.counterparty_id,
        counterparty_name=obligation.counterparty_name,
        principal=obligation.principal,
        current_balance=obligation.current_balance,
        interest_policy=InterestPolicyRecord(kind=obligation.interest_policy.kind, rate=obligation.interest_policy.rate),
        created_at=obligation.created_at,
        last_interest_applied_at=obligation.last_interest_applied_at,
        notes=obligation.notes,
        due_at=obligation.due_at,
        frozen=obligation.frozen,
        repayments=[
            RepaymentRecord(amount=r.amount, timestamp=r.timestamp, note=r.note, automatic=r.automatic, kind=r.kind)
            for r in obligation.repayments
        ],
        completed=obligation.completed,
        completed_at=obligation.completed_at,
        last_action_at=obligation.last_action_at,
        last_action_fetched_at=obligation.last_action_fetched_at,
    )


def encode_ledger(ledger: Ledger) -> dict:
    """Serialize to a JSON-compatible document; processed ids are sorted for stable output"""
    record = LedgerRecord(
        obligations=[_to_record(o) for o in ledger.obligations],
        processed_payments=sorted(ledger.processed_payments),
    )
    return record.model_dump(mode="json", by_alias=True)


def decode_ledger(document: Any) -> Ledger:
    """
    Deserialize a stored document.

    Missing or corrupt documents decode to an empty ledger; the error is
    logged rather than raised so a bad blob never blocks startup.
    """
    if document is None:
        return Ledger()

    try:
        record = LedgerRecord.model_validate(document)
    except ValidationError as e:
        logging.warning(f"Discarding corrupt ledger document: {e.error_count()} validation errors")
        return Ledger()

    return Ledger(
        obligations=[_to_domain(r) for r in record.obligations],
        processed_payments=set(record.processed_payments),
    )
