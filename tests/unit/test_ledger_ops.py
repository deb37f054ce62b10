"""Unit tests for obligation mutations"""

from datetime import timedelta

import pytest

from sidekick_ledger.domain.exceptions import InvalidOperationError
from sidekick_ledger.domain.ledger import apply_repayment, build_obligation, increase_principal, mark_completed
from sidekick_ledger.domain.models import EntryKind, InterestPolicy, ObligationKind


def test_build_obligation_uses_placeholder_name(now):
    """Test a missing name becomes a player placeholder"""
    obligation = build_obligation(ObligationKind.DEBT, 42, None, 500, InterestPolicy(), now)

    assert obligation.counterparty_name == "Player [42]"
    assert obligation.has_placeholder_name
    assert obligation.current_balance == obligation.principal == 500
    assert obligation.last_interest_applied_at == now
    assert obligation.id.startswith("debt_")


def test_build_obligation_generates_unique_ids(now):
    """Test every new obligation gets a distinct id"""
    ids = {build_obligation(ObligationKind.LOAN, 1, "A", 10, InterestPolicy(), now).id for _ in range(50)}
    assert len(ids) == 50


@pytest.mark.parametrize("principal", [0, -5, float("nan"), float("inf")])
def test_build_obligation_rejects_non_positive_principal(now, principal):
    """Test invalid principal amounts are rejected"""
    with pytest.raises(InvalidOperationError):
        build_obligation(ObligationKind.LOAN, 1, "A", principal, InterestPolicy(), now)


def test_repayment_reduces_balance(obligation_factory, now):
    """Test a repayment reduces the balance and is recorded"""
    obligation = obligation_factory(principal=1000)

    repayment = apply_repayment(obligation, 400, now, note="first")

    assert obligation.current_balance == 600
    assert obligation.repayments == [repayment]
    assert repayment.automatic is False
    assert not obligation.completed


def test_overpayment_floors_at_zero_and_completes(obligation_factory, now):
    """Test overpaying clamps the balance to zero"""
    obligation = obligation_factory(principal=1000)

    apply_repayment(obligation, 1500, now)

    assert obligation.current_balance == 0
    assert obligation.completed
    assert obligation.completed_at == now


def test_balance_within_epsilon_completes(obligation_factory, now):
    """Test a balance under one cent completes the obligation"""
    obligation = obligation_factory(principal=1000)
    obligation.current_balance = 100.005

    apply_repayment(obligation, 100, now)

    assert obligation.current_balance == pytest.approx(0.005)
    assert obligation.completed


@pytest.mark.parametrize("amount", [0, -10, float("nan"), float("inf")])
def test_repayment_rejects_invalid_amount(obligation_factory, now, amount):
    """Test zero, negative and non-finite repayments are rejected"""
    obligation = obligation_factory()

    with pytest.raises(InvalidOperationError):
        apply_repayment(obligation, amount, now)

    assert obligation.current_balance == 1000
    assert obligation.repayments == []


def test_repayment_rejected_once_completed(obligation_factory, now):
    """Test completed obligations refuse repayments"""
    obligation = obligation_factory()
    apply_repayment(obligation, 1000, now)

    with pytest.raises(InvalidOperationError):
        apply_repayment(obligation, 10, now)

    assert obligation.completed


def test_mark_completed_is_idempotent(obligation_factory, now):
    """Test marking completed twice keeps the first completion time"""
    obligation = obligation_factory()

    assert mark_completed(obligation, now) is True
    assert mark_completed(obligation, now + timedelta(days=1)) is False
    assert obligation.completed_at == now


def test_increase_principal_on_loan(obligation_factory, now):
    """Test increasing a loan raises principal and balance"""
    obligation = obligation_factory(kind=ObligationKind.LOAN, principal=1000)
    apply_repayment(obligation, 200, now)

    entry = increase_principal(obligation, 500, now)

    assert obligation.principal == 1500
    assert obligation.current_balance == 1300
    assert entry.kind == EntryKind.INCREASE
    assert obligation.repayments[-1] is entry
    assert obligation.total_repaid == 200


def test_increase_principal_rejected_on_debt(obligation_factory, now):
    """Test debts cannot be increased"""
    obligation = obligation_factory(kind=ObligationKind.DEBT)

    with pytest.raises(InvalidOperationError):
        increase_principal(obligation, 500, now)

    assert obligation.principal == 1000
    assert obligation.repayments == []


@pytest.mark.parametrize("amount", [0, -50, float("nan"), float("inf")])
def test_increase_principal_rejects_invalid_amount(obligation_factory, now, amount):
    """Test invalid increase amounts are rejected"""
    obligation = obligation_factory(kind=ObligationKind.LOAN, principal=1000)

    with pytest.raises(InvalidOperationError):
        increase_principal(obligation, amount, now)

    assert obligation.principal == 1000
    assert obligation.current_balance == 1000
    assert obligation.repayments == []
