"""Order endpoints - CreateOrder, UpdateChequeStatus, GetOrder and history"""

import time
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request

from cheque_clearance.api.dependencies import get_clock, get_ledger, get_request_id
from cheque_clearance.api.errors import to_http_error
from cheque_clearance.api.v1.schemas import (
    CreateOrderRequest,
    HistoryResponse,
    OrderResponse,
    StatusEventSchema,
    UpdateChequeStatusRequest,
)
from cheque_clearance.domain.exceptions import DomainException
from cheque_clearance.domain.models import TransitionEvidence
from cheque_clearance.domain.projection import project
from cheque_clearance.domain.snapshot import build_cheque_snapshot
from cheque_clearance.infrastructure.observability.logging import log_transition
from cheque_clearance.services.ledger import ChequeLedger

router = APIRouter()


def _order_view(ledger: ChequeLedger, order_id: str, now) -> OrderResponse:
    """Current order state; the payment status is projected from `now`, never stored"""
    instrument, history = ledger.get(order_id)
    effective_due_date = ledger.effective_due_date(instrument)
    snapshot = build_cheque_snapshot(instrument, history, effective_due_date)

    return OrderResponse(
        order_id=instrument.instrument_id,
        obligation_ref=instrument.obligation_id,
        amount_cents=instrument.amount_cents,
        currency=instrument.currency,
        status=instrument.status,
        payment_status=project(instrument.status, effective_due_date, now),
        effective_due_date=effective_due_date,
        version=instrument.version,
        notes=snapshot.to_notes(),
        history=[StatusEventSchema.from_domain(e) for e in history],
    )


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_order(
    body: CreateOrderRequest,
    request: Request,
    ledger: ChequeLedger = Depends(get_ledger),
    clock=Depends(get_clock),
):
    """
    Record a cheque received for an installment.

    Flow:
    1. Check the obligation exists and is an installment
    2. Create the instrument in Received with its evidence documents
    3. Extend the obligation's effective due date to a later cheque date
    4. Publish the snapshot, then commit
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        order_id = await ledger.create(
            obligation_id=body.obligation_ref,
            cheque_number=body.cheque_number,
            cheque_amount_cents=body.amount_cents,
            cheque_date=body.cheque_date,
            created_by=body.created_by,
            currency=body.currency,
            documents=[doc.to_domain() for doc in body.evidence_documents],
        )
    except DomainException as e:
        raise to_http_error(e, request_id)

    log_transition(request_id, order_id, None, "Received", body.created_by, (time.time() - start_time) * 1000)
    return _order_view(ledger, order_id, clock())


@router.post("/orders/{order_id}/cheque-status", response_model=OrderResponse)
async def update_cheque_status(
    order_id: str,
    body: UpdateChequeStatusRequest,
    request: Request,
    idempotency_key: Optional[str] = Header(default=None),
    ledger: ChequeLedger = Depends(get_ledger),
    clock=Depends(get_clock),
):
    """
    Apply an administrative status change to a cheque.

    Errors:
        409 for an illegal edge or a lost race (re-read, then retry)
        422 when the target's required evidence is missing
        503 when the obligation service did not take the snapshot;
            retry with the same Idempotency-Key
    """
    start_time = time.time()
    request_id = get_request_id(request)

    evidence = TransitionEvidence(
        reason=body.reason,
        presentation_date=body.presentation_date,
        clearance_date=body.clearance_date,
        documents=[doc.to_domain() for doc in body.evidence_documents],
    )

    try:
        status_event = await ledger.transition(
            order_id,
            body.target_status,
            body.acting_user,
            evidence,
            expected_version=body.expected_version,
            idempotency_key=idempotency_key,
        )
    except DomainException as e:
        raise to_http_error(e, request_id)

    log_transition(
        request_id,
        order_id,
        status_event.previous_status.value if status_event.previous_status else None,
        status_event.new_status.value,
        body.acting_user,
        (time.time() - start_time) * 1000,
    )
    return _order_view(ledger, order_id, clock())


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    request: Request,
    ledger: ChequeLedger = Depends(get_ledger),
    clock=Depends(get_clock),
):
    """Order with its published notes and the payment status as of now"""
    try:
        return _order_view(ledger, order_id, clock())
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))


@router.get("/orders/{order_id}/history", response_model=HistoryResponse)
def get_order_history(
    order_id: str,
    request: Request,
    ledger: ChequeLedger = Depends(get_ledger),
):
    """Full status history, oldest first"""
    try:
        _, history = ledger.get(order_id)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return HistoryResponse(order_id=order_id, events=[StatusEventSchema.from_domain(e) for e in history])
