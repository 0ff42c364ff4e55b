"""
Versioned status snapshot exchanged with the obligation-owning service.

The obligation service stores payment details as a flat bag of string keys
and string values ("notes"). Instead of writing ad-hoc keys, both sides go
through a schema-checked record:

    instrument + history --build_cheque_snapshot--> ChequeStatusSnapshot
    ChequeStatusSnapshot --to_notes--> {"chequeStatus": "Presented", ...}
    {"chequeStatus": ...} --decode_notes--> ChequeStatusSnapshot | None

Every payment method owns its snapshot model and its own status enum. The
`paymentMethod` key selects the model when decoding, so a new method is a new
entry in SNAPSHOT_MODELS and never a new case in the cheque enum.
"""

import abc
import json
from datetime import date, datetime
from typing import ClassVar, Dict, List, Literal, Mapping, Optional, Sequence, Type

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cheque_clearance.domain.exceptions import SnapshotDecodeError
from cheque_clearance.domain.models import (
    ChequeInstrument,
    ChequeStatus,
    EvidenceDocument,
    PaymentStatus,
    StatusEvent,
)
from cheque_clearance.domain.projection import project


SCHEMA_VERSION = 1
METHOD_KEY = "paymentMethod"
VERSION_KEY = "schemaVersion"


class EvidenceDocumentRecord(BaseModel):
    """Wire form of an evidence document"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    document_hash: str = Field(alias="documentHash")
    document_asset_url: str = Field(alias="documentAssetUrl")
    document_name: str = Field(alias="documentName")

    @classmethod
    def from_domain(cls, document: EvidenceDocument) -> "EvidenceDocumentRecord":
        return cls(
            document_hash=document.document_hash,
            document_asset_url=document.document_asset_url,
            document_name=document.document_name,
        )

    def to_domain(self) -> EvidenceDocument:
        return EvidenceDocument(
            document_hash=self.document_hash,
            document_asset_url=self.document_asset_url,
            document_name=self.document_name,
        )


class PaymentSnapshot(BaseModel):
    """Common envelope of every per-method snapshot"""

    model_config = ConfigDict(populate_by_name=True)

    # Notes key whose presence means the method's publisher has written a snapshot
    status_key: ClassVar[str]

    schema_version: int = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    revision: Optional[int] = Field(default=None, ge=1, alias="revision")

    @abc.abstractmethod
    def payment_status(self, now: date | datetime) -> PaymentStatus:
        """Obligation payment status this snapshot projects to as of `now`"""

    def to_notes(self) -> Dict[str, str]:
        """Flatten into the string-only annotation bag; absent values are omitted"""
        data = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        return {key: value if isinstance(value, str) else json.dumps(value) for key, value in data.items()}


class ChequeStatusSnapshot(PaymentSnapshot):
    """Everything the obligation service may show about a cheque payment"""

    status_key: ClassVar[str] = "chequeStatus"

    payment_method: Literal["cheque"] = Field(default="cheque", alias="paymentMethod")
    cheque_status: ChequeStatus = Field(alias="chequeStatus")
    cheque_number: Optional[str] = Field(default=None, alias="chequeNumber")
    cheque_date: Optional[date] = Field(default=None, alias="chequeDate")
    effective_due_date: Optional[date] = Field(default=None, alias="effectiveDueDate")
    presentation_date: Optional[date] = Field(default=None, alias="presentationDate")
    clearance_date: Optional[date] = Field(default=None, alias="clearanceDate")
    last_updated_by: Optional[str] = Field(default=None, alias="lastUpdatedBy")
    last_status_update: Optional[datetime] = Field(default=None, alias="lastStatusUpdate")
    presented_reason: Optional[str] = Field(default=None, alias="presentedReason")
    received_documents: List[EvidenceDocumentRecord] = Field(default_factory=list, alias="receivedDocuments")
    presented_documents: List[EvidenceDocumentRecord] = Field(default_factory=list, alias="presentedDocuments")

    @field_validator("received_documents", "presented_documents", mode="before")
    @classmethod
    def _decode_document_list(cls, value):
        # Notes carry document lists as JSON text
        if isinstance(value, str):
            return json.loads(value)
        return value

    def payment_status(self, now: date | datetime) -> PaymentStatus:
        # Without a due date the obligation cannot be proven late
        due = self.effective_due_date or date.max
        return project(self.cheque_status, due, now)


SNAPSHOT_MODELS: Dict[str, Type[PaymentSnapshot]] = {
    "cheque": ChequeStatusSnapshot,
}


def build_cheque_snapshot(
    instrument: ChequeInstrument,
    history: Sequence[StatusEvent],
    effective_due_date: Optional[date] = None,
) -> ChequeStatusSnapshot:
    """Assemble the snapshot for an instrument from its full, ordered history"""
    if not history:
        raise ValueError(f"Instrument {instrument.instrument_id} has no status history")

    last = history[-1]
    presentation_date = next(
        (e.presentation_date for e in reversed(history) if e.presentation_date is not None), None
    )
    clearance_date = next((e.clearance_date for e in reversed(history) if e.clearance_date is not None), None)
    latest_documents = next((e.documents for e in reversed(history[1:]) if e.documents), [])

    return ChequeStatusSnapshot(
        revision=instrument.version,
        cheque_status=instrument.status,
        cheque_number=instrument.cheque_number,
        cheque_date=instrument.cheque_date,
        effective_due_date=effective_due_date,
        presentation_date=presentation_date,
        clearance_date=clearance_date,
        last_updated_by=last.acting_user,
        last_status_update=last.occurred_at,
        presented_reason=last.reason,
        received_documents=[EvidenceDocumentRecord.from_domain(d) for d in history[0].documents],
        presented_documents=[EvidenceDocumentRecord.from_domain(d) for d in latest_documents],
    )


def decode_notes(notes: Mapping[str, str]) -> Optional[PaymentSnapshot]:
    """
    Decode an annotation bag written by any supported publisher.

    Returns None when the bag holds no snapshot this service understands: a
    payment of another method, or a cheque whose first publish has not
    happened yet.

    Raises:
        SnapshotDecodeError: Snapshot is present but malformed or from an
            unsupported schema version
    """
    if not isinstance(notes, Mapping):
        raise SnapshotDecodeError(f"Notes must be a mapping of strings, got {type(notes).__name__}")

    method = notes.get(METHOD_KEY)
    if method is None:
        # Bags written before the method tag existed are cheque bags
        if ChequeStatusSnapshot.status_key not in notes:
            return None
        method = "cheque"

    model = SNAPSHOT_MODELS.get(method)
    if model is None or model.status_key not in notes:
        return None

    version = notes.get(VERSION_KEY, str(SCHEMA_VERSION))
    if version != str(SCHEMA_VERSION):
        raise SnapshotDecodeError(f"Unsupported snapshot schema version {version!r}")

    try:
        return model.model_validate(dict(notes))
    except pydantic.ValidationError as e:
        raise SnapshotDecodeError(f"Malformed {method} snapshot: {e}") from e
