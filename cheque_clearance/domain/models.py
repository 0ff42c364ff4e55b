"""Domain models - pure Python dataclasses representing business entities"""

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional


class ChequeStatus(str, enum.Enum):
    """Bank-verification stage of a cheque instrument"""

    RECEIVED = "Received"
    PRESENTED = "Presented"
    CLEARED = "Cleared"
    REJECTED = "Rejected"
    BOUNCED = "Bounced"
    RETURNED = "Returned"


class PaymentStatus(str, enum.Enum):
    """Externally visible status of the obligation a cheque pays"""

    UNCLEAR_RECEIVED = "Unclear_Received"
    UNCLEAR_PRESENTED = "Unclear_Presented"
    PAID = "Paid"
    PENDING = "Pending"
    OVERDUE = "Overdue"


class ObligationKind(str, enum.Enum):
    INSTALLMENT = "installment"
    ONE_TIME = "one_time"


@dataclass(frozen=True)
class EvidenceDocument:
    """Stored document backing a status change (deposit slip, bank memo, ...)"""

    document_hash: str
    document_asset_url: str
    document_name: str


@dataclass(frozen=True)
class TransitionEvidence:
    """Everything an administrator may attach to a transition command"""

    reason: Optional[str] = None
    presentation_date: Optional[date] = None
    clearance_date: Optional[date] = None
    documents: List[EvidenceDocument] = field(default_factory=list)


@dataclass
class InstallmentObligation:
    """Obligation record owned by the obligation service, replicated locally"""

    obligation_id: str
    kind: ObligationKind
    amount_cents: int
    currency: str
    original_due_date: date
    effective_due_date: date


@dataclass
class ChequeInstrument:
    """Single cheque submitted against one installment obligation"""

    instrument_id: str
    obligation_id: str
    cheque_number: str
    amount_cents: int
    currency: str
    cheque_date: date
    status: ChequeStatus
    created_by: str
    created_at: datetime
    version: int


@dataclass
class StatusEvent:
    """One entry of an instrument's append-only status history"""

    instrument_id: str
    sequence: int
    previous_status: Optional[ChequeStatus]
    new_status: ChequeStatus
    acting_user: str
    occurred_at: datetime
    reason: Optional[str] = None
    presentation_date: Optional[date] = None
    clearance_date: Optional[date] = None
    documents: List[EvidenceDocument] = field(default_factory=list)
    idempotency_key: Optional[str] = None


@dataclass
class OrderPaymentView:
    """Row of a batch status display on the obligation-owning side"""

    order_id: str
    payment_status: PaymentStatus
    cheque_status: Optional[ChequeStatus] = None
    degraded: bool = False
