"""Query-time projection of cheque status onto the obligation's payment status"""

from datetime import date, datetime
from cheque_clearance.domain.models import ChequeStatus, PaymentStatus
from cheque_clearance.utils.date_utils import as_calendar_date


_FIXED_PROJECTIONS = {
    ChequeStatus.CLEARED: PaymentStatus.PAID,
    ChequeStatus.RECEIVED: PaymentStatus.UNCLEAR_RECEIVED,
    ChequeStatus.PRESENTED: PaymentStatus.UNCLEAR_PRESENTED,
}


def project(status: ChequeStatus, effective_due_date: date, now: date | datetime) -> PaymentStatus:
    """
    Map an instrument status to the payment status shown to the obligation owner.

    Failed cheques (Rejected, Bounced, Returned) leave the installment unpaid,
    so their visible status depends on whether the effective due date has
    passed at `now`. The result must never be persisted: the same instrument
    reads Pending today and Overdue once the due date is behind us.
    """
    if status in _FIXED_PROJECTIONS:
        return _FIXED_PROJECTIONS[status]

    if as_calendar_date(now) > effective_due_date:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING
