"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from sidekick_ledger.domain.models import (
    Alert,
    AlertSeverity,
    AlertType,
    EntryKind,
    InterestKind,
    Obligation,
    ObligationKind,
)
from sidekick_ledger.infrastructure.notifications import Notification, Severity


class CreateObligationRequest(BaseModel):
    """Request body for POST /v1/obligations"""

    kind: ObligationKind
    counterparty_id: int = Field(..., gt=0, description="Torn player id")
    counterparty_name: Optional[str] = Field(None, description="Display name; resolved from Torn when omitted")
    principal: float = Field(..., gt=0)
    interest_kind: InterestKind = InterestKind.NONE
    interest_rate: float = Field(0.0, ge=0)
    notes: str = ""
    due_at: Optional[datetime] = None


class RepaymentRequest(BaseModel):
    """Request body for POST /v1/obligations/{id}/repayments"""

    amount: float = Field(..., gt=0)
    note: str = "Manual payment"


class IncreaseRequest(BaseModel):
    """Request body for POST /v1/obligations/{id}/increase"""

    amount: float = Field(..., gt=0)


class RepaymentSchema(BaseModel):
    amount: float
    timestamp: datetime
    note: str
    automatic: bool
    kind: EntryKind


class ObligationResponse(BaseModel):
    id: str
    kind: ObligationKind
    counterparty_id: Optional[int]
    counterparty_name: str
    principal: float
    current_balance: float
    interest_kind: InterestKind
    interest_rate: float
    frozen: bool
    completed: bool
    completed_at: Optional[datetime]
    due_at: Optional[datetime]
    created_at: datetime
    notes: str
    last_action_at: Optional[datetime]
    repayments: List[RepaymentSchema]

    @classmethod
    def from_domain(cls, obligation: Obligation) -> "ObligationResponse":
        return cls(
            id=obligation.id,
            kind=obligation.kind,
            counterparty_id=obligation.counterparty_id,
            counterparty_name=obligation.counterparty_name,
            principal=obligation.principal,
            current_balance=obligation.current_balance,
            interest_kind=obligation.interest_policy.kind,
            interest_rate=obligation.interest_policy.rate,
            frozen=obligation.frozen,
            completed=obligation.completed,
            completed_at=obligation.completed_at,
            due_at=obligation.due_at,
            created_at=obligation.created_at,
            notes=obligation.notes,
            last_action_at=obligation.last_action_at,
            repayments=[
                RepaymentSchema(
                    amount=r.amount,
                    timestamp=r.timestamp,
                    note=r.note,
                    automatic=r.automatic,
                    kind=r.kind,
                )
                for r in obligation.repayments
            ],
        )


class AlertSchema(BaseModel):
    type: AlertType
    severity: AlertSeverity
    message: str
    obligation_id: str

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertSchema":
        return cls(type=alert.type, severity=alert.severity, message=alert.message, obligation_id=alert.obligation_id)


class ReconcileResponse(BaseModel):
    applied: int


class NotificationSchema(BaseModel):
    title: str
    message: str
    severity: Severity
    duration_ms: Optional[int]
    created_at: datetime

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationSchema":
        return cls(
            title=notification.title,
            message=notification.message,
            severity=notification.severity,
            duration_ms=notification.duration_ms,
            created_at=notification.created_at,
        )
