"""Debt tracker: wires the ledger services together and owns their timers"""

import asyncio
import logging
from typing import List, Optional, Set

from sidekick_ledger.config import Settings, settings as default_settings
from sidekick_ledger.domain.alerts import alerts_for, all_alerts
from sidekick_ledger.domain.exceptions import ObligationNotFoundError, StorageError
from sidekick_ledger.domain.models import Alert, Obligation
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.clients.torn import TornClient
from sidekick_ledger.infrastructure.notifications import Notifier
from sidekick_ledger.infrastructure.observability.metrics import interest_accrued_counter
from sidekick_ledger.infrastructure.storage.kv import KeyValueStore
from sidekick_ledger.services.enrichment import CounterpartyEnricher
from sidekick_ledger.services.matcher import PaymentMatcher
from sidekick_ledger.services.scheduler import PeriodicTask, ReconciliationScheduler
from sidekick_ledger.services.store import ObligationStore
from sidekick_ledger.utils.date_utils import utcnow


class DebtTracker:
    """
    Long-lived ledger service with an explicit init/destroy lifecycle.

    Collaborators are injected so tests can swap in in-memory stores, mock
    transports and recording notifiers.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        client: TornClient,
        api_keys: ApiKeyProvider,
        notifier: Notifier,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.api_keys = api_keys
        self.notifier = notifier
        self.store = ObligationStore(kv_store, self.settings.storage_key, on_placeholder=self._schedule_name_lookup)
        self.matcher = PaymentMatcher(self.store, notifier, self.settings)
        self.enricher = CounterpartyEnricher(self.store, client, api_keys, self.settings)
        self.reconciler = ReconciliationScheduler(self.matcher, client, api_keys, notifier, self.settings)
        self.interest_timer = PeriodicTask("interest-accrual", self.settings.interest_interval_seconds, self.update_interest)
        self.alert_timer = PeriodicTask("alert-monitoring", self.settings.activity_interval_seconds, self.check_alerts)
        self.initialized = False
        self._lookups: Set[asyncio.Task] = set()

    async def init(self, start_timers: bool = True) -> None:
        if self.initialized:
            logging.info("Debt tracker already initialized")
            return

        await self.store.load()
        self.initialized = True

        if start_timers:
            self.interest_timer.start()
            self.reconciler.start()
            self.alert_timer.start()
            self._spawn(self._resolve_placeholders_later())

    async def destroy(self) -> None:
        """Stop every timer and pending lookup; safe to call more than once"""
        await self.interest_timer.stop()
        await self.reconciler.stop()
        await self.alert_timer.stop()

        lookups, self._lookups = list(self._lookups), set()
        for task in lookups:
            task.cancel()
        if lookups:
            await asyncio.gather(*lookups, return_exceptions=True)

        if self.initialized:
            logging.info("Debt tracker destroyed")
        self.initialized = False

    async def update_interest(self) -> bool:
        try:
            changed = await self.store.apply_interest()
        except StorageError as e:
            logging.error(f"Failed to persist accrued interest: {e}")
            interest_accrued_counter.labels(outcome="failed").inc()
            return False
        interest_accrued_counter.labels(outcome="changed" if changed else "unchanged").inc()
        if changed:
            logging.info("Applied accrued interest")
        return changed

    async def check_alerts(self) -> List[Alert]:
        """Refresh stale activity data, then evaluate alerts for open obligations"""
        await self.enricher.refresh_activity()
        return self.alerts()

    def alerts(self) -> List[Alert]:
        return all_alerts(self.store.list_obligations(), utcnow())

    def alerts_for(self, obligation_id: str) -> List[Alert]:
        obligation = self.store.find_by_id(obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(obligation_id)
        return alerts_for(obligation, utcnow())

    def _schedule_name_lookup(self, obligation: Obligation) -> None:
        self._spawn(self.enricher.resolve_name(obligation.id))

    async def _resolve_placeholders_later(self) -> None:
        await asyncio.sleep(self.settings.placeholder_lookup_delay_seconds)
        await self.enricher.resolve_placeholders()

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._lookups.add(task)
        task.add_done_callback(self._lookups.discard)
