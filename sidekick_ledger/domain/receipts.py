"""Plain-text receipts for sharing an obligation's status"""

from sidekick_ledger.domain.models import Obligation, ObligationKind


def _money(amount: float) -> str:
    return f"${amount:,.2f}".removesuffix(".00")


def generate_receipt(obligation: Obligation) -> str:
    """
    Render a receipt in the format players paste into in-game mail.

    Example:
        Loan Receipt
        -------------
        Borrower: Chedburn
        Loan Amount: $1,000
        Interest: 5% weekly
        Remaining Balance: $600
        Start Date: 2024-01-01
        Due Date: No due date
        Notes: None

        Total Paid: $400
    """
    is_debt = obligation.kind == ObligationKind.DEBT
    title = "Debt Receipt" if is_debt else "Loan Receipt"
    party_label = "Debtor" if is_debt else "Borrower"
    policy = obligation.interest_policy

    lines = [
        title,
        "-------------",
        f"{party_label}: {obligation.counterparty_name}",
        f"{'Debt' if is_debt else 'Loan'} Amount: {_money(obligation.principal)}",
        f"Interest: {policy.rate:g}% {policy.kind.value}",
        f"Remaining Balance: {_money(obligation.current_balance)}",
        f"Start Date: {obligation.created_at.date().isoformat()}",
        f"Due Date: {obligation.due_at.date().isoformat() if obligation.due_at else 'No due date'}",
        f"Notes: {obligation.notes or 'None'}",
    ]

    total_paid = obligation.total_repaid
    if total_paid > 0:
        lines.extend(["", f"Total Paid: {_money(total_paid)}"])
    if obligation.frozen:
        lines.extend(["", "Status: FROZEN"])

    return "\n".join(lines)
