"""Payment matcher: applies loan repayments found in Torn transaction logs"""

from datetime import datetime
from typing import Any, Optional

from sidekick_ledger.config import Settings, settings as default_settings
from sidekick_ledger.domain.matching import normalize_log_payload, reconcile
from sidekick_ledger.domain.models import TransferDirection
from sidekick_ledger.infrastructure.notifications import Notifier, Severity
from sidekick_ledger.infrastructure.observability.logging import log_reconciliation, log_repayment
from sidekick_ledger.infrastructure.observability.metrics import record_repayment, record_skipped_events
from sidekick_ledger.services.store import ObligationStore
from sidekick_ledger.utils.date_utils import hours_ago, utcnow


class PaymentMatcher:
    """Safe to call repeatedly with overlapping batches: each log event applies at most once"""

    def __init__(self, store: ObligationStore, notifier: Notifier, settings: Optional[Settings] = None):
        self.store = store
        self.notifier = notifier
        self.settings = settings or default_settings

    async def process_logs(self, logs: Any, now: Optional[datetime] = None) -> int:
        """
        Match a batch of raw log entries against open obligations.

        The processed ids and balance changes of the whole batch are written in
        one store transaction.

        Returns:
            Number of repayments applied

        Raises:
            StorageError: The batch could not be persisted; nothing was applied
        """
        now = now or utcnow()
        events = normalize_log_payload(logs)

        async with self.store.transaction() as ledger:
            result = reconcile(ledger, events, now, hours_ago(now, self.settings.log_window_hours))

        record_skipped_events(result.skipped)
        log_reconciliation(len(events), len(result.applied), result.skipped)

        for payment in result.applied:
            record_repayment(automatic=True)
            log_repayment(
                payment.obligation_id,
                payment.counterparty_name,
                payment.amount,
                automatic=True,
                completed=payment.completed,
                payment_id=payment.payment_id,
            )
            preposition = "from" if payment.direction == TransferDirection.RECEIVE else "to"
            message = f"Auto-detected repayment: ${payment.amount:,.0f} {preposition} {payment.counterparty_name}"
            if payment.completed:
                message += " (paid off)"
            self.notifier.show("Debt Tracker", message, Severity.SUCCESS)

        return len(result.applied)
