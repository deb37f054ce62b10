"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from sidekick_ledger.infrastructure.notifications import FeedNotifier
from sidekick_ledger.services.tracker import DebtTracker


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_tracker(request: Request) -> DebtTracker:
    """Provide the application's debt tracker"""
    return request.app.state.tracker


def get_notification_feed(request: Request) -> FeedNotifier:
    """Provide the notification feed the tracker writes to"""
    return request.app.state.notifications
