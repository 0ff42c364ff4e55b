"""SQLAlchemy ORM models for obligations, cheque instruments and their status history"""

import logging
import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from cheque_clearance.domain.exceptions import AuditTrailImmutableError

logger = logging.getLogger(__name__)

Base = declarative_base()


class InstallmentObligationRecord(Base):
    """Local replica of an obligation owned by the obligation service"""

    __tablename__ = "installment_obligation"

    id = Column(Text, primary_key=True)
    kind = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    original_due_date = Column(Date, nullable=False)
    effective_due_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    instruments = relationship("ChequeInstrumentRecord", back_populates="obligation")


class ChequeInstrumentRecord(Base):
    """Cheque instrument; status changes only through the ledger"""

    __tablename__ = "cheque_instrument"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    obligation_id = Column(
        Text,
        ForeignKey("installment_obligation.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    cheque_number = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(3), nullable=False)
    cheque_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False)
    created_by = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False)

    # Every UPDATE checks and bumps version; a stale writer gets StaleDataError
    __mapper_args__ = {"version_id_col": version}

    obligation = relationship("InstallmentObligationRecord", back_populates="instruments")
    events = relationship(
        "ChequeStatusEventRecord",
        back_populates="instrument",
        order_by="ChequeStatusEventRecord.sequence",
    )


class ChequeStatusEventRecord(Base):
    """Append-only status history row"""

    __tablename__ = "cheque_status_event"
    __table_args__ = (
        UniqueConstraint("instrument_id", "sequence", name="uq_cheque_status_event_sequence"),
        UniqueConstraint("instrument_id", "idempotency_key", name="uq_cheque_status_event_idempotency"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    instrument_id = Column(
        UUID(as_uuid=True),
        ForeignKey("cheque_instrument.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False)
    previous_status = Column(Text, nullable=True)
    new_status = Column(Text, nullable=False)
    acting_user = Column(Text, nullable=False)
    reason = Column(Text, nullable=True)
    presentation_date = Column(Date, nullable=True)
    clearance_date = Column(Date, nullable=True)
    documents = Column(JSON, nullable=False, default=list)
    idempotency_key = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)

    instrument = relationship("ChequeInstrumentRecord", back_populates="events")


@event.listens_for(ChequeStatusEventRecord, "before_update")
def _reject_event_update(mapper, connection, target):
    logger.error(
        "Audit trail mutation blocked",
        extra={"step": "audit_guard", "operation": "UPDATE", "event_id": target.id},
    )
    raise AuditTrailImmutableError(f"Status event {target.id} is immutable")


@event.listens_for(ChequeStatusEventRecord, "before_delete")
def _reject_event_delete(mapper, connection, target):
    logger.error(
        "Audit trail mutation blocked",
        extra={"step": "audit_guard", "operation": "DELETE", "event_id": target.id},
    )
    raise AuditTrailImmutableError(f"Status event {target.id} cannot be deleted")
