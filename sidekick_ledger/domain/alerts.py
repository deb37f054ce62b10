"""Due-date and inactivity alerts derived from obligation state"""

from datetime import datetime
from typing import Iterable, List

from sidekick_ledger.domain.models import Alert, AlertSeverity, AlertType, Obligation
from sidekick_ledger.utils.date_utils import whole_days_since, whole_days_until

DUE_SOON_DAYS = 3
DUE_WEEK_DAYS = 7
INACTIVE_DAYS = 7


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def alerts_for(obligation: Obligation, now: datetime) -> List[Alert]:
    """
    Evaluate alerts for one obligation.

    - Past due date: high severity, whole days overdue
    - Due within 3 days: medium; within 7 days: low
    - Counterparty last seen 7+ days ago: low, always listed last
    """
    alerts: List[Alert] = []
    label = obligation.kind.value.capitalize()

    if obligation.due_at is not None:
        if now > obligation.due_at:
            days_overdue = whole_days_since(obligation.due_at, now)
            alerts.append(
                Alert(
                    type=AlertType.OVERDUE,
                    severity=AlertSeverity.HIGH,
                    message=f"{label} is {_plural(days_overdue, 'day')} overdue!",
                    obligation_id=obligation.id,
                )
            )
        else:
            days_until_due = whole_days_until(obligation.due_at, now)
            if days_until_due <= DUE_SOON_DAYS:
                alerts.append(
                    Alert(
                        type=AlertType.DUE_SOON,
                        severity=AlertSeverity.MEDIUM,
                        message=f"{label} due in {_plural(days_until_due, 'day')}",
                        obligation_id=obligation.id,
                    )
                )
            elif days_until_due <= DUE_WEEK_DAYS:
                alerts.append(
                    Alert(
                        type=AlertType.DUE_WEEK,
                        severity=AlertSeverity.LOW,
                        message=f"{label} due in {days_until_due} days",
                        obligation_id=obligation.id,
                    )
                )

    if obligation.last_action_at is not None:
        days_inactive = whole_days_since(obligation.last_action_at, now)
        if days_inactive >= INACTIVE_DAYS:
            alerts.append(
                Alert(
                    type=AlertType.PLAYER_INACTIVE,
                    severity=AlertSeverity.LOW,
                    message=f"Player last seen {days_inactive} days ago",
                    obligation_id=obligation.id,
                )
            )

    return alerts


def all_alerts(obligations: Iterable[Obligation], now: datetime) -> List[Alert]:
    """Alerts for every open obligation, grouped per obligation in list order"""
    result: List[Alert] = []
    for obligation in obligations:
        if obligation.completed:
            continue
        result.extend(alerts_for(obligation, now))
    return result
