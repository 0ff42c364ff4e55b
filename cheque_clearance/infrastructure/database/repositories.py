"""Data access layer for obligations, cheque instruments and status history"""

import uuid
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from cheque_clearance.infrastructure.database.models import (
    InstallmentObligationRecord,
    ChequeInstrumentRecord,
    ChequeStatusEventRecord,
)
from cheque_clearance.domain.models import (
    ChequeInstrument,
    ChequeStatus,
    EvidenceDocument,
    InstallmentObligation,
    ObligationKind,
    StatusEvent,
)


def _parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _obligation_to_domain(row: InstallmentObligationRecord) -> InstallmentObligation:
    return InstallmentObligation(
        obligation_id=row.id,
        kind=ObligationKind(row.kind),
        amount_cents=row.amount_cents,
        currency=row.currency,
        original_due_date=row.original_due_date,
        effective_due_date=row.effective_due_date,
    )


def _instrument_to_domain(row: ChequeInstrumentRecord) -> ChequeInstrument:
    return ChequeInstrument(
        instrument_id=str(row.id),
        obligation_id=row.obligation_id,
        cheque_number=row.cheque_number,
        amount_cents=row.amount_cents,
        currency=row.currency,
        cheque_date=row.cheque_date,
        status=ChequeStatus(row.status),
        created_by=row.created_by,
        created_at=row.created_at,
        version=row.version,
    )


def _event_to_domain(row: ChequeStatusEventRecord) -> StatusEvent:
    return StatusEvent(
        instrument_id=str(row.instrument_id),
        sequence=row.sequence,
        previous_status=ChequeStatus(row.previous_status) if row.previous_status else None,
        new_status=ChequeStatus(row.new_status),
        acting_user=row.acting_user,
        occurred_at=row.occurred_at,
        reason=row.reason,
        presentation_date=row.presentation_date,
        clearance_date=row.clearance_date,
        documents=[
            EvidenceDocument(
                document_hash=doc["documentHash"],
                document_asset_url=doc["documentAssetUrl"],
                document_name=doc["documentName"],
            )
            for doc in row.documents or []
        ],
        idempotency_key=row.idempotency_key,
    )


class ObligationRepository:
    """Lookup and due-date maintenance for replicated obligations"""

    def __init__(self, db: Session):
        self.db = db

    def register(
        self,
        obligation_id: str,
        kind: ObligationKind,
        amount_cents: int,
        currency: str,
        due_date: date,
    ) -> InstallmentObligation:
        """Store a new obligation; original and effective due dates start equal"""
        row = InstallmentObligationRecord(
            id=obligation_id,
            kind=kind.value,
            amount_cents=amount_cents,
            currency=currency,
            original_due_date=due_date,
            effective_due_date=due_date,
        )
        self.db.add(row)
        self.db.flush()
        return _obligation_to_domain(row)

    def find(self, obligation_id: str) -> Optional[InstallmentObligation]:
        row = self.db.get(InstallmentObligationRecord, obligation_id)
        return _obligation_to_domain(row) if row else None

    def extend_effective_due_date(self, obligation_id: str, new_due_date: date) -> InstallmentObligation:
        """
        Move the effective due date forward.

        Never moves it backwards. The comparison runs in the UPDATE itself, so a
        writer holding a stale copy of the row cannot overwrite a later date
        committed by another transaction.

        Returns:
            The obligation as stored after the update
        """
        self.db.execute(
            update(InstallmentObligationRecord)
            .where(
                InstallmentObligationRecord.id == obligation_id,
                InstallmentObligationRecord.effective_due_date < new_due_date,
            )
            .values(effective_due_date=new_due_date)
            .execution_options(synchronize_session=False)
        )
        row = (
            self.db.query(InstallmentObligationRecord)
            .filter(InstallmentObligationRecord.id == obligation_id)
            .populate_existing()
            .one()
        )
        return _obligation_to_domain(row)


class InstrumentRepository:
    """Repository for cheque instruments"""

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        obligation_id: str,
        cheque_number: str,
        amount_cents: int,
        currency: str,
        cheque_date: date,
        created_by: str,
        created_at: datetime,
    ) -> ChequeInstrumentRecord:
        row = ChequeInstrumentRecord(
            obligation_id=obligation_id,
            cheque_number=cheque_number,
            amount_cents=amount_cents,
            currency=currency,
            cheque_date=cheque_date,
            status=ChequeStatus.RECEIVED.value,
            created_by=created_by,
            created_at=created_at,
        )
        self.db.add(row)
        self.db.flush()  # Get ID and initial version without committing
        return row

    def get_record(self, instrument_id: str) -> Optional[ChequeInstrumentRecord]:
        instrument_uuid = _parse_uuid(instrument_id)
        if instrument_uuid is None:
            return None
        return self.db.get(ChequeInstrumentRecord, instrument_uuid)

    def get(self, instrument_id: str) -> Optional[ChequeInstrument]:
        row = self.get_record(instrument_id)
        return _instrument_to_domain(row) if row else None

    def set_status(self, row: ChequeInstrumentRecord, status: ChequeStatus) -> ChequeInstrument:
        """Persist a new status; the flush bumps the version or raises StaleDataError"""
        row.status = status.value
        self.db.flush()
        return _instrument_to_domain(row)

    @staticmethod
    def to_domain(row: ChequeInstrumentRecord) -> ChequeInstrument:
        return _instrument_to_domain(row)


class AuditTrailRecorder:
    """Append-only store of status events; there is no update or delete"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        instrument_id: str,
        previous_status: Optional[ChequeStatus],
        new_status: ChequeStatus,
        acting_user: str,
        occurred_at: datetime,
        reason: Optional[str] = None,
        presentation_date: Optional[date] = None,
        clearance_date: Optional[date] = None,
        documents: Optional[List[EvidenceDocument]] = None,
        idempotency_key: Optional[str] = None,
    ) -> StatusEvent:
        instrument_uuid = uuid.UUID(str(instrument_id))
        last = (
            self.db.query(ChequeStatusEventRecord)
            .filter(ChequeStatusEventRecord.instrument_id == instrument_uuid)
            .order_by(ChequeStatusEventRecord.sequence.desc())
            .first()
        )
        row = ChequeStatusEventRecord(
            instrument_id=instrument_uuid,
            sequence=(last.sequence + 1) if last else 1,
            previous_status=previous_status.value if previous_status else None,
            new_status=new_status.value,
            acting_user=acting_user,
            reason=reason,
            presentation_date=presentation_date,
            clearance_date=clearance_date,
            documents=[
                {
                    "documentHash": doc.document_hash,
                    "documentAssetUrl": doc.document_asset_url,
                    "documentName": doc.document_name,
                }
                for doc in documents or []
            ],
            idempotency_key=idempotency_key,
            occurred_at=occurred_at,
        )
        self.db.add(row)
        self.db.flush()
        return _event_to_domain(row)

    def history(self, instrument_id: str) -> List[StatusEvent]:
        """All events for an instrument in insertion order"""
        instrument_uuid = _parse_uuid(instrument_id)
        if instrument_uuid is None:
            return []
        rows = (
            self.db.query(ChequeStatusEventRecord)
            .filter(ChequeStatusEventRecord.instrument_id == instrument_uuid)
            .order_by(ChequeStatusEventRecord.sequence)
            .all()
        )
        return [_event_to_domain(row) for row in rows]

    def find_by_idempotency_key(self, instrument_id: str, idempotency_key: str) -> Optional[StatusEvent]:
        row = (
            self.db.query(ChequeStatusEventRecord)
            .filter(
                ChequeStatusEventRecord.instrument_id == uuid.UUID(str(instrument_id)),
                ChequeStatusEventRecord.idempotency_key == idempotency_key,
            )
            .first()
        )
        return _event_to_domain(row) if row else None
