"""Interest accrual for open obligations"""

import math
from datetime import datetime
from typing import Iterable

from sidekick_ledger.domain.models import InterestKind, Obligation
from sidekick_ledger.utils.date_utils import elapsed_days

# Divisor in days for each prorated policy
PERIOD_DAYS = {
    InterestKind.DAILY: 1,
    InterestKind.WEEKLY: 7,
    InterestKind.APR: 365,
}


def accrue(obligation: Obligation, now: datetime) -> float:
    """
    Compute interest accrued since the last application.

    Policies:
    - daily / weekly / apr: balance * rate% * elapsed periods (prorated)
    - flat: rate charged once per whole elapsed day, never prorated

    Prorated policies use the balance at call time, not the original principal.
    Pure: the caller applies the result to the balance and timestamp.

    Returns:
        Interest amount, never negative
    """
    policy = obligation.interest_policy
    if obligation.frozen or policy.kind == InterestKind.NONE or policy.rate <= 0:
        return 0.0

    days = elapsed_days(obligation.last_interest_applied_at, now)

    if policy.kind == InterestKind.FLAT:
        whole_days = math.floor(days)
        interest = policy.rate * whole_days if whole_days >= 1 else 0.0
    else:
        periods = days / PERIOD_DAYS[policy.kind]
        interest = obligation.current_balance * (policy.rate / 100) * periods

    return max(0.0, interest)


def apply_all_interest(obligations: Iterable[Obligation], now: datetime) -> bool:
    """
    Add accrued interest to every open, unfrozen obligation.

    Returns:
        True if any balance changed (caller should persist)
    """
    changed = False
    for obligation in obligations:
        if obligation.frozen or obligation.completed:
            continue

        interest = accrue(obligation, now)
        if interest > 0:
            obligation.current_balance += interest
            obligation.last_interest_applied_at = now
            changed = True

    return changed
