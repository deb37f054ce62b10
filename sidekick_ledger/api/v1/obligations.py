"""/v1/obligations - manual ledger management"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse

from sidekick_ledger.api.dependencies import get_request_id, get_tracker
from sidekick_ledger.api.v1.schemas import (
    AlertSchema,
    CreateObligationRequest,
    IncreaseRequest,
    ObligationResponse,
    RepaymentRequest,
)
from sidekick_ledger.domain.exceptions import ObligationNotFoundError
from sidekick_ledger.domain.models import InterestPolicy, Obligation
from sidekick_ledger.domain.receipts import generate_receipt
from sidekick_ledger.services.tracker import DebtTracker

router = APIRouter()


def _get_or_404(tracker: DebtTracker, obligation_id: str) -> Obligation:
    obligation = tracker.store.find_by_id(obligation_id)
    if obligation is None:
        raise ObligationNotFoundError(obligation_id)
    return obligation


@router.get("/obligations", response_model=List[ObligationResponse])
def list_obligations(
    include_completed: bool = Query(False, description="Include paid-off obligations"),
    tracker: DebtTracker = Depends(get_tracker),
):
    return [ObligationResponse.from_domain(o) for o in tracker.store.list_obligations(include_completed)]


@router.post("/obligations", response_model=ObligationResponse, status_code=status.HTTP_201_CREATED)
async def create_obligation(
    body: CreateObligationRequest,
    request: Request,
    tracker: DebtTracker = Depends(get_tracker),
):
    """
    Start tracking a debt or loan.

    When counterparty_name is omitted the entry is stored as "Player [id]"
    and the real name is looked up from Torn in the background.
    """
    obligation = await tracker.store.create(
        kind=body.kind,
        counterparty_id=body.counterparty_id,
        counterparty_name=body.counterparty_name,
        principal=body.principal,
        interest_policy=InterestPolicy(kind=body.interest_kind, rate=body.interest_rate),
        notes=body.notes,
        due_at=body.due_at,
    )
    logging.info("Obligation created", extra={"request_id": get_request_id(request), "obligation_id": obligation.id})
    return ObligationResponse.from_domain(obligation)


@router.get("/obligations/{obligation_id}", response_model=ObligationResponse)
def get_obligation(obligation_id: str, tracker: DebtTracker = Depends(get_tracker)):
    return ObligationResponse.from_domain(_get_or_404(tracker, obligation_id))


@router.delete("/obligations/{obligation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_obligation(obligation_id: str, tracker: DebtTracker = Depends(get_tracker)):
    await tracker.store.delete(obligation_id)


@router.post("/obligations/{obligation_id}/repayments", response_model=ObligationResponse)
async def add_repayment(obligation_id: str, body: RepaymentRequest, tracker: DebtTracker = Depends(get_tracker)):
    await tracker.store.add_repayment(obligation_id, body.amount, note=body.note)
    return ObligationResponse.from_domain(_get_or_404(tracker, obligation_id))


@router.post("/obligations/{obligation_id}/increase", response_model=ObligationResponse)
async def increase_loan(obligation_id: str, body: IncreaseRequest, tracker: DebtTracker = Depends(get_tracker)):
    """Lend more on an existing loan (debts cannot be increased)"""
    obligation = await tracker.store.increase_principal(obligation_id, body.amount)
    return ObligationResponse.from_domain(obligation)


@router.post("/obligations/{obligation_id}/freeze", response_model=ObligationResponse)
async def toggle_freeze(obligation_id: str, tracker: DebtTracker = Depends(get_tracker)):
    """Toggle interest accrual for an obligation"""
    obligation = await tracker.store.toggle_freeze(obligation_id)
    return ObligationResponse.from_domain(obligation)


@router.post("/obligations/{obligation_id}/complete", response_model=ObligationResponse)
async def complete_obligation(obligation_id: str, tracker: DebtTracker = Depends(get_tracker)):
    obligation = await tracker.store.mark_completed(obligation_id)
    return ObligationResponse.from_domain(obligation)


@router.get("/obligations/{obligation_id}/receipt", response_class=PlainTextResponse)
def get_receipt(obligation_id: str, tracker: DebtTracker = Depends(get_tracker)):
    return generate_receipt(_get_or_404(tracker, obligation_id))


@router.get("/obligations/{obligation_id}/alerts", response_model=List[AlertSchema])
def get_obligation_alerts(obligation_id: str, tracker: DebtTracker = Depends(get_tracker)):
    return [AlertSchema.from_domain(a) for a in tracker.alerts_for(obligation_id)]
