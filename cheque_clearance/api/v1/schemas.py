"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from cheque_clearance.domain.models import (
    ChequeStatus,
    EvidenceDocument,
    ObligationKind,
    PaymentStatus,
    StatusEvent,
)


class EvidenceDocumentSchema(BaseModel):
    """Stored document attached to a cheque status change"""

    document_hash: str = Field(..., min_length=1)
    document_asset_url: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1)

    def to_domain(self) -> EvidenceDocument:
        return EvidenceDocument(
            document_hash=self.document_hash,
            document_asset_url=self.document_asset_url,
            document_name=self.document_name,
        )


class CreateOrderRequest(BaseModel):
    """Request body for POST /v1/orders"""

    amount_cents: int = Field(..., gt=0, description="Cheque amount in cents")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency code")
    obligation_ref: str = Field(..., min_length=1, description="Installment obligation the cheque pays")
    payment_method: Literal["cheque"] = "cheque"
    cheque_number: str = Field(..., min_length=1)
    cheque_date: date
    created_by: str = Field(..., min_length=1, description="User recording the cheque")
    evidence_documents: List[EvidenceDocumentSchema] = Field(default_factory=list)


class UpdateChequeStatusRequest(BaseModel):
    """Request body for POST /v1/orders/{order_id}/cheque-status"""

    target_status: ChequeStatus
    acting_user: str = Field(..., min_length=1)
    reason: Optional[str] = None
    evidence_documents: List[EvidenceDocumentSchema] = Field(default_factory=list)
    presentation_date: Optional[date] = None
    clearance_date: Optional[date] = None
    expected_version: Optional[int] = Field(None, ge=1, description="Version the caller last read")


class StatusEventSchema(BaseModel):
    """Single entry of the status history"""

    sequence: int
    previous_status: Optional[ChequeStatus]
    new_status: ChequeStatus
    acting_user: str
    occurred_at: datetime
    reason: Optional[str] = None
    presentation_date: Optional[date] = None
    clearance_date: Optional[date] = None
    documents: List[EvidenceDocumentSchema] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, event: StatusEvent) -> "StatusEventSchema":
        return cls(
            sequence=event.sequence,
            previous_status=event.previous_status,
            new_status=event.new_status,
            acting_user=event.acting_user,
            occurred_at=event.occurred_at,
            reason=event.reason,
            presentation_date=event.presentation_date,
            clearance_date=event.clearance_date,
            documents=[
                EvidenceDocumentSchema(
                    document_hash=doc.document_hash,
                    document_asset_url=doc.document_asset_url,
                    document_name=doc.document_name,
                )
                for doc in event.documents
            ],
        )


class OrderResponse(BaseModel):
    """Order view returned by every order endpoint"""

    order_id: str
    obligation_ref: str
    payment_method: Literal["cheque"] = "cheque"
    amount_cents: int
    currency: str
    status: ChequeStatus
    payment_status: PaymentStatus
    effective_due_date: date
    version: int
    notes: Dict[str, str]
    history: List[StatusEventSchema] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    """Response for GET /v1/orders/{order_id}/history"""

    order_id: str
    events: List[StatusEventSchema]


class RegisterObligationRequest(BaseModel):
    """Request body for POST /v1/obligations"""

    obligation_id: str = Field(..., min_length=1)
    kind: ObligationKind
    amount_cents: int = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    due_date: date


class ObligationResponse(BaseModel):
    obligation_id: str
    kind: ObligationKind
    amount_cents: int
    currency: str
    original_due_date: date
    effective_due_date: date


class BatchStatusRequest(BaseModel):
    """Request body for POST /v1/payment-status/batch"""

    order_ids: List[str] = Field(..., min_length=1, max_length=500)


class PaymentStatusItem(BaseModel):
    order_id: str
    payment_status: PaymentStatus
    cheque_status: Optional[ChequeStatus] = None
    degraded: bool = False


class BatchStatusResponse(BaseModel):
    items: List[PaymentStatusItem]
