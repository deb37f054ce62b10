"""Unit tests for the obligation store and its persistence round trip"""

from datetime import timedelta

import pytest

from sidekick_ledger.domain.exceptions import InvalidOperationError, ObligationNotFoundError, StorageError
from sidekick_ledger.domain.models import EntryKind, InterestKind, InterestPolicy, ObligationKind
from sidekick_ledger.infrastructure.storage.kv import InMemoryKeyValueStore
from sidekick_ledger.services.store import ObligationStore


class FailingKeyValueStore(InMemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def set(self, key, value):
        if self.fail_writes:
            raise StorageError("disk full")
        await super().set(key, value)


async def test_load_missing_blob_is_empty(store):
    """Test loading with nothing stored gives an empty ledger"""
    ledger = await store.load()
    assert ledger.obligations == []
    assert ledger.processed_payments == set()


@pytest.mark.parametrize("blob", ["not a ledger", [1, 2, 3], {"obligations": [{"id": "x"}]}])
async def test_load_corrupt_blob_is_empty(test_settings, blob):
    """Test a corrupt blob loads as an empty ledger"""
    kv_store = InMemoryKeyValueStore({test_settings.storage_key: blob})
    store = ObligationStore(kv_store, test_settings.storage_key)

    ledger = await store.load()

    assert ledger.obligations == []


async def test_create_persists_and_sets_balance(store, kv_store, test_settings, now):
    """Test create persists and sets balance to principal"""
    obligation = await store.create(
        ObligationKind.LOAN,
        500,
        "Chedburn",
        1000,
        InterestPolicy(kind=InterestKind.DAILY, rate=2),
        notes="xanax money",
        due_at=now + timedelta(days=7),
        now=now,
    )

    assert obligation.current_balance == 1000
    assert obligation.last_interest_applied_at == now
    assert store.find_by_id(obligation.id) is obligation

    blob = await kv_store.get(test_settings.storage_key)
    assert blob["obligations"][0]["id"] == obligation.id
    assert blob["obligations"][0]["counterpartyName"] == "Chedburn"
    assert blob["processedPayments"] == []


async def test_create_with_placeholder_triggers_hook(kv_store, test_settings, now):
    """Test placeholder names trigger the name lookup hook"""
    seen = []
    store = ObligationStore(kv_store, test_settings.storage_key, on_placeholder=seen.append)

    placeholder = await store.create(ObligationKind.DEBT, 42, None, 100, now=now)
    await store.create(ObligationKind.DEBT, 43, "Named", 100, now=now)

    assert placeholder.counterparty_name == "Player [42]"
    assert [o.id for o in seen] == [placeholder.id]


async def test_create_rejects_negative_rate(store, now):
    """Test negative interest rates are rejected"""
    with pytest.raises(InvalidOperationError):
        await store.create(ObligationKind.LOAN, 1, "A", 100, InterestPolicy(InterestKind.DAILY, -1), now=now)
    assert store.list_obligations() == []


async def test_round_trip_is_lossless(store, kv_store, test_settings, now):
    """Test save(load()) writes back exactly the stored document"""
    loan = await store.create(
        ObligationKind.LOAN, 500, "Chedburn", 1000, InterestPolicy(InterestKind.FLAT, 50), due_at=now, now=now
    )
    await store.add_repayment(loan.id, 123.45, note="partial", now=now + timedelta(hours=1))
    await store.increase_principal(loan.id, 300, now=now + timedelta(hours=2))
    await store.update_counterparty(loan.id, last_action_at=now, fetched_at=now)
    async with store.transaction() as ledger:
        ledger.processed_payments.add("receive_500_400_1000")
    original = await kv_store.get(test_settings.storage_key)

    reloaded = ObligationStore(kv_store, test_settings.storage_key)
    await reloaded.load()
    await reloaded.save()

    assert await kv_store.get(test_settings.storage_key) == original
    restored = reloaded.find_by_id(loan.id)
    assert [r.kind for r in restored.repayments] == [EntryKind.REPAYMENT, EntryKind.INCREASE]
    assert restored.repayments[0].note == "partial"
    assert restored.due_at == now
    assert reloaded.processed_payments == {"receive_500_400_1000"}


async def test_delete_is_permanent(store, now):
    """Test deleted obligations are gone after reload"""
    obligation = await store.create(ObligationKind.DEBT, 1, "A", 100, now=now)

    await store.delete(obligation.id)

    assert store.find_by_id(obligation.id) is None
    assert store.list_obligations(include_completed=True) == []


async def test_delete_unknown_raises(store):
    """Test deleting an unknown id raises not found"""
    with pytest.raises(ObligationNotFoundError):
        await store.delete("missing")


async def test_mark_completed_is_idempotent(store, now):
    """Test completing twice through the store is harmless"""
    obligation = await store.create(ObligationKind.DEBT, 1, "A", 100, now=now)

    await store.mark_completed(obligation.id, now=now)
    again = await store.mark_completed(obligation.id, now=now + timedelta(days=1))

    assert again.completed
    assert again.completed_at == now
    assert store.list_obligations() == []
    assert store.list_obligations(include_completed=True) == [again]


async def test_increase_principal_on_debt_is_rejected(store, now):
    """Test the store rejects increasing a debt"""
    debt = await store.create(ObligationKind.DEBT, 1, "A", 100, now=now)

    with pytest.raises(InvalidOperationError):
        await store.increase_principal(debt.id, 50)

    assert store.find_by_id(debt.id).principal == 100


async def test_toggle_freeze(store, now):
    """Test freezing and unfreezing an obligation"""
    obligation = await store.create(ObligationKind.LOAN, 1, "A", 100, now=now)

    assert (await store.toggle_freeze(obligation.id)).frozen is True
    assert (await store.toggle_freeze(obligation.id)).frozen is False


async def test_apply_interest_persists_only_on_change(store, kv_store, now):
    """Test interest is saved only when balances change"""
    await store.create(ObligationKind.LOAN, 1, "A", 100, InterestPolicy(InterestKind.DAILY, 10), now=now)
    writes = kv_store.writes

    assert await store.apply_interest(now=now) is False
    assert kv_store.writes == writes

    assert await store.apply_interest(now=now + timedelta(days=1)) is True
    assert kv_store.writes == writes + 1
    assert store.list_obligations()[0].current_balance == pytest.approx(110)


async def test_failed_write_leaves_memory_untouched(test_settings, now):
    """Test a failed write leaves memory unchanged"""
    kv_store = FailingKeyValueStore()
    store = ObligationStore(kv_store, test_settings.storage_key)
    obligation = await store.create(ObligationKind.LOAN, 1, "A", 100, now=now)
    kv_store.fail_writes = True

    with pytest.raises(StorageError):
        await store.add_repayment(obligation.id, 40)

    assert store.find_by_id(obligation.id).current_balance == 100
    assert store.find_by_id(obligation.id).repayments == []


async def test_reset_clears_processed_payments(store, now):
    """Test reset clears obligations and processed ids"""
    await store.create(ObligationKind.LOAN, 1, "A", 100, now=now)
    async with store.transaction() as ledger:
        ledger.processed_payments.add("receive_1_100_5")

    await store.reset()

    assert store.list_obligations(include_completed=True) == []
    assert store.processed_payments == frozenset()
