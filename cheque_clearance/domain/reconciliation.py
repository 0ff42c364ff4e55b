"""Due-date reconciliation for the installment a cheque pays"""

from datetime import date


def reconcile(cheque_date: date, current_effective_due_date: date) -> date:
    """
    Compute the obligation's effective due date after a cheque is received.

    A post-dated cheque cannot be banked before its own date, so the
    installment is not due before then either. An earlier cheque date leaves
    the due date untouched.

    Example:
        due 2025-09-15, cheque dated 2025-09-20 -> 2025-09-20
        due 2025-09-15, cheque dated 2025-09-10 -> 2025-09-15
    """
    if cheque_date > current_effective_due_date:
        return cheque_date
    return current_effective_due_date
