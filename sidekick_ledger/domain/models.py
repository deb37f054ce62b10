"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

COMPLETION_EPSILON = 0.01
PLACEHOLDER_PREFIX = "Player ["


class ObligationKind(str, Enum):
    """Debt: tracked as owed by the counterparty. Loan: money lent out."""

    DEBT = "debt"
    LOAN = "loan"


class InterestKind(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    FLAT = "flat"
    APR = "apr"


class EntryKind(str, Enum):
    REPAYMENT = "repayment"
    INCREASE = "increase"


class TransferDirection(str, Enum):
    """Direction of a "Money sending" log event, as seen by the local player"""

    RECEIVE = "receive"
    SEND = "send"


class AlertSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertType(str, Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    DUE_WEEK = "due_week"
    PLAYER_INACTIVE = "player_inactive"


@dataclass
class InterestPolicy:
    kind: InterestKind = InterestKind.NONE
    rate: float = 0.0


@dataclass
class Repayment:
    """Entry in an obligation's append-only history"""

    amount: float
    timestamp: datetime
    note: str = ""
    automatic: bool = False
    kind: EntryKind = EntryKind.REPAYMENT


@dataclass
class Obligation:
    """A tracked debt or loan"""

    id: str
    kind: ObligationKind
    counterparty_id: Optional[int]
    counterparty_name: str
    principal: float
    current_balance: float
    interest_policy: InterestPolicy
    created_at: datetime
    last_interest_applied_at: datetime
    notes: str = ""
    due_at: Optional[datetime] = None
    frozen: bool = False
    repayments: List[Repayment] = field(default_factory=list)
    completed: bool = False
    completed_at: Optional[datetime] = None
    last_action_at: Optional[datetime] = None
    last_action_fetched_at: Optional[datetime] = None

    @property
    def has_placeholder_name(self) -> bool:
        return is_placeholder_name(self.counterparty_name)

    @property
    def total_repaid(self) -> float:
        return sum(r.amount for r in self.repayments if r.kind == EntryKind.REPAYMENT)


@dataclass
class Ledger:
    """Everything persisted under the ledger storage key"""

    obligations: List[Obligation] = field(default_factory=list)
    processed_payments: Set[str] = field(default_factory=set)

    def find(self, obligation_id: str) -> Optional[Obligation]:
        return next((o for o in self.obligations if o.id == obligation_id), None)


@dataclass
class TransferEvent:
    """A recognized money transfer parsed from a raw Torn log entry"""

    direction: TransferDirection
    counterparty_id: int
    amount: float
    message: str
    timestamp: int  # Unix seconds as reported by Torn


@dataclass
class AppliedPayment:
    """Outcome of matching one transfer event to an obligation"""

    payment_id: str
    obligation_id: str
    counterparty_name: str
    direction: TransferDirection
    amount: float
    completed: bool


@dataclass
class Alert:
    type: AlertType
    severity: AlertSeverity
    message: str
    obligation_id: str


@dataclass
class CounterpartyProfile:
    """Subset of a Torn profile used for enrichment"""

    player_id: int
    name: Optional[str]
    last_action_at: Optional[datetime]


def placeholder_name(counterparty_id: Optional[int]) -> str:
    return f"{PLACEHOLDER_PREFIX}{counterparty_id if counterparty_id is not None else '?'}]"


def is_placeholder_name(name: Optional[str]) -> bool:
    return not name or name.startswith(PLACEHOLDER_PREFIX)
