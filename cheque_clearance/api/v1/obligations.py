"""Obligation replica endpoints - registration by the obligation owner and lookup"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cheque_clearance.api.v1.schemas import ObligationResponse, RegisterObligationRequest
from cheque_clearance.domain.exceptions import ObligationNotFoundError
from cheque_clearance.domain.models import InstallmentObligation
from cheque_clearance.infrastructure.database.repositories import ObligationRepository
from cheque_clearance.infrastructure.database.session import get_db

router = APIRouter()


def _to_response(obligation: InstallmentObligation) -> ObligationResponse:
    return ObligationResponse(
        obligation_id=obligation.obligation_id,
        kind=obligation.kind,
        amount_cents=obligation.amount_cents,
        currency=obligation.currency,
        original_due_date=obligation.original_due_date,
        effective_due_date=obligation.effective_due_date,
    )


@router.post("/obligations", response_model=ObligationResponse, status_code=201)
def register_obligation(body: RegisterObligationRequest, db: Session = Depends(get_db)):
    """Replicate an obligation so cheques can be taken against it"""
    repo = ObligationRepository(db)
    if repo.find(body.obligation_id) is not None:
        raise HTTPException(status_code=409, detail=f"Obligation {body.obligation_id} already registered")

    try:
        obligation = repo.register(
            obligation_id=body.obligation_id,
            kind=body.kind,
            amount_cents=body.amount_cents,
            currency=body.currency,
            due_date=body.due_date,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Obligation {body.obligation_id} already registered")

    return _to_response(obligation)


@router.get("/obligations/{obligation_id}", response_model=ObligationResponse)
def get_obligation(obligation_id: str, db: Session = Depends(get_db)):
    """Obligation with its original and effective due dates; unknown ids reach the app-level handler"""
    obligation = ObligationRepository(db).find(obligation_id)
    if obligation is None:
        raise ObligationNotFoundError(obligation_id)
    return _to_response(obligation)
