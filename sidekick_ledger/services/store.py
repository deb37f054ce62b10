"""Obligation store: in-memory ledger with a single persisted mutation path"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, List, Optional

from sidekick_ledger.domain import ledger as ledger_ops
from sidekick_ledger.domain.exceptions import ObligationNotFoundError, StorageError
from sidekick_ledger.domain.interest import apply_all_interest
from sidekick_ledger.domain.models import InterestPolicy, Ledger, Obligation, ObligationKind, Repayment
from sidekick_ledger.infrastructure.observability.logging import log_repayment
from sidekick_ledger.infrastructure.observability.metrics import record_open_obligations, record_repayment
from sidekick_ledger.infrastructure.storage.codec import decode_ledger, encode_ledger
from sidekick_ledger.infrastructure.storage.kv import KeyValueStore
from sidekick_ledger.utils.date_utils import utcnow

PlaceholderHook = Callable[[Obligation], None]


class ObligationStore:
    """
    Owns the obligation list and the processed-payment set.

    Every mutation goes through transaction(): it holds one lock, works on a
    copy of the ledger and swaps it in only after the whole document has been
    written with a single store.set() call. The interest timer and the
    reconciliation timer therefore never lose each other's updates, and a
    failed write never leaves a payment marked but unapplied in memory.
    """

    def __init__(self, kv_store: KeyValueStore, storage_key: str, on_placeholder: Optional[PlaceholderHook] = None):
        self.kv_store = kv_store
        self.storage_key = storage_key
        self.on_placeholder = on_placeholder
        self._ledger = Ledger()
        self._lock = asyncio.Lock()

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def processed_payments(self) -> frozenset:
        return frozenset(self._ledger.processed_payments)

    async def load(self) -> Ledger:
        """Read the persisted ledger; unreadable or corrupt data yields an empty one"""
        try:
            document = await self.kv_store.get(self.storage_key)
        except StorageError as e:
            logging.error(f"Failed to load ledger, starting empty: {e}")
            document = None

        self._ledger = decode_ledger(document)
        record_open_obligations(self._ledger.obligations)
        logging.info(
            "Ledger loaded",
            extra={
                "obligations": len(self._ledger.obligations),
                "processed_payments": len(self._ledger.processed_payments),
            },
        )
        return self._ledger

    async def save(self) -> None:
        async with self._lock:
            await self._write(self._ledger)

    async def _write(self, ledger: Ledger) -> None:
        await self.kv_store.set(self.storage_key, encode_ledger(ledger))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Ledger]:
        """
        Yield a working copy of the ledger and persist it atomically on exit.

        Raises:
            StorageError: The write failed; the in-memory ledger is unchanged
        """
        async with self._lock:
            working = copy.deepcopy(self._ledger)
            yield working

            if encode_ledger(working) == encode_ledger(self._ledger):
                return

            await self._write(working)
            self._ledger = working
            record_open_obligations(working.obligations)

    def find_by_id(self, obligation_id: str) -> Optional[Obligation]:
        return self._ledger.find(obligation_id)

    def list_obligations(self, include_completed: bool = False) -> List[Obligation]:
        return [o for o in self._ledger.obligations if include_completed or not o.completed]

    @staticmethod
    def _require(ledger: Ledger, obligation_id: str) -> Obligation:
        obligation = ledger.find(obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(obligation_id)
        return obligation

    async def create(
        self,
        kind: ObligationKind,
        counterparty_id: Optional[int],
        counterparty_name: Optional[str],
        principal: float,
        interest_policy: Optional[InterestPolicy] = None,
        notes: str = "",
        due_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Obligation:
        """Create and persist an obligation; placeholder names trigger enrichment"""
        obligation = ledger_ops.build_obligation(
            kind=kind,
            counterparty_id=counterparty_id,
            counterparty_name=counterparty_name,
            principal=principal,
            interest_policy=interest_policy or InterestPolicy(),
            now=now or utcnow(),
            notes=notes,
            due_at=due_at,
        )

        async with self.transaction() as ledger:
            ledger.obligations.append(obligation)

        created = self._require(self._ledger, obligation.id)
        logging.info(
            f"Created {kind.value} with {created.counterparty_name} for ${principal:,.2f}",
            extra={"obligation_id": created.id},
        )

        if created.has_placeholder_name and created.counterparty_id is not None and self.on_placeholder:
            self.on_placeholder(created)

        return created

    async def delete(self, obligation_id: str) -> None:
        async with self.transaction() as ledger:
            obligation = self._require(ledger, obligation_id)
            ledger.obligations.remove(obligation)

    async def mark_completed(self, obligation_id: str, now: Optional[datetime] = None) -> Obligation:
        """Idempotent: completing a completed obligation changes nothing"""
        async with self.transaction() as ledger:
            ledger_ops.mark_completed(self._require(ledger, obligation_id), now or utcnow())
        return self._require(self._ledger, obligation_id)

    async def increase_principal(self, obligation_id: str, amount: float, now: Optional[datetime] = None) -> Obligation:
        async with self.transaction() as ledger:
            ledger_ops.increase_principal(self._require(ledger, obligation_id), amount, now or utcnow())
        return self._require(self._ledger, obligation_id)

    async def add_repayment(
        self,
        obligation_id: str,
        amount: float,
        note: str = "",
        automatic: bool = False,
        now: Optional[datetime] = None,
    ) -> Repayment:
        async with self.transaction() as ledger:
            obligation = self._require(ledger, obligation_id)
            repayment = ledger_ops.apply_repayment(obligation, amount, now or utcnow(), note=note, automatic=automatic)

        record_repayment(automatic)
        log_repayment(obligation.id, obligation.counterparty_name, amount, automatic, obligation.completed)
        return repayment

    async def toggle_freeze(self, obligation_id: str) -> Obligation:
        async with self.transaction() as ledger:
            obligation = self._require(ledger, obligation_id)
            obligation.frozen = not obligation.frozen
        logging.info(f"{'Frozen' if obligation.frozen else 'Unfrozen'} interest for {obligation.counterparty_name}")
        return self._require(self._ledger, obligation_id)

    async def apply_interest(self, now: Optional[datetime] = None) -> bool:
        """Accrue interest on every open obligation; returns whether anything changed"""
        async with self.transaction() as ledger:
            changed = apply_all_interest(ledger.obligations, now or utcnow())
        return changed

    async def update_counterparty(
        self,
        obligation_id: str,
        name: Optional[str] = None,
        last_action_at: Optional[datetime] = None,
        fetched_at: Optional[datetime] = None,
    ) -> Obligation:
        async with self.transaction() as ledger:
            obligation = self._require(ledger, obligation_id)
            if name:
                obligation.counterparty_name = name
            if last_action_at is not None:
                obligation.last_action_at = last_action_at
            if fetched_at is not None:
                obligation.last_action_fetched_at = fetched_at
        return self._require(self._ledger, obligation_id)

    async def reset(self) -> None:
        """Drop every obligation and forget processed payments"""
        async with self.transaction() as ledger:
            ledger.obligations.clear()
            ledger.processed_payments.clear()
