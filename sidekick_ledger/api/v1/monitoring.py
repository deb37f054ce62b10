"""Alerts, on-demand reconciliation and the notification feed"""

from typing import List

from fastapi import APIRouter, Depends

from sidekick_ledger.api.dependencies import get_notification_feed, get_tracker
from sidekick_ledger.api.v1.schemas import AlertSchema, NotificationSchema, ReconcileResponse
from sidekick_ledger.infrastructure.notifications import FeedNotifier
from sidekick_ledger.services.tracker import DebtTracker

router = APIRouter()


@router.get("/alerts", response_model=List[AlertSchema])
def list_alerts(tracker: DebtTracker = Depends(get_tracker)):
    """Due-date and inactivity alerts for all open obligations"""
    return [AlertSchema.from_domain(a) for a in tracker.alerts()]


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_now(tracker: DebtTracker = Depends(get_tracker)):
    """Check the Torn log for repayments without waiting for the next tick"""
    applied = await tracker.reconciler.check_for_payments()
    return ReconcileResponse(applied=applied)


@router.get("/notifications", response_model=List[NotificationSchema])
def list_notifications(feed: FeedNotifier = Depends(get_notification_feed)):
    return [NotificationSchema.from_domain(n) for n in feed.recent()]
