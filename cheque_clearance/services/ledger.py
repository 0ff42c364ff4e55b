"""
Cheque Instrument Ledger - owns instruments and commits validated transitions.

Unit of work for every write:
1. Validate (state machine + evidence); rejections touch nothing
2. Update instrument status and append the status event
3. Publish the new snapshot to the obligation service
4. Commit; any failure in 2-3 rolls the whole unit back

Transitions on one instrument are serialized by InstrumentGuard inside this
process and by the instrument's version column across processes. The loser of
a race gets ConcurrentModificationError and must re-read before retrying.

Publishing before the commit leaves a window: if the commit fails after the
obligation service accepted the PUT, or the caller gives up after the response
is lost, the service shows a state this ledger rolled back. It is corrected by
the next publish for the instrument (a retry with the same idempotency key or a
later transition), whose revision is never lower and so replaces the bag;
there is no outbox.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Iterator, List, Optional, Set, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from cheque_clearance.domain.exceptions import (
    ConcurrentModificationError,
    IdempotencyKeyReusedError,
    InstrumentNotFoundError,
    InvalidTransitionError,
    MissingEvidenceError,
    ObligationNotFoundError,
    ObligationNotInstallmentError,
    UpstreamUnavailableError,
)
from cheque_clearance.domain.models import (
    ChequeInstrument,
    ChequeStatus,
    EvidenceDocument,
    ObligationKind,
    StatusEvent,
    TransitionEvidence,
)
from cheque_clearance.domain.reconciliation import reconcile
from cheque_clearance.domain.snapshot import ChequeStatusSnapshot, build_cheque_snapshot
from cheque_clearance.domain.transitions import validate_transition
from cheque_clearance.infrastructure.clients.status_publisher import StatusPublisher
from cheque_clearance.infrastructure.database.repositories import (
    AuditTrailRecorder,
    InstrumentRepository,
    ObligationRepository,
)
from cheque_clearance.infrastructure.observability.metrics import (
    due_date_extension_counter,
    instrument_created_counter,
    record_rejection,
    record_transition,
)
from cheque_clearance.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


class InstrumentGuard:
    """Non-blocking per-instrument claim; no lock is shared between instruments"""

    def __init__(self):
        self._mutex = threading.Lock()
        self._in_flight: Set[str] = set()

    @contextmanager
    def hold(self, instrument_id: str) -> Iterator[None]:
        with self._mutex:
            if instrument_id in self._in_flight:
                raise ConcurrentModificationError(instrument_id, "another transition is in flight")
            self._in_flight.add(instrument_id)
        try:
            yield
        finally:
            with self._mutex:
                self._in_flight.discard(instrument_id)

    def is_held(self, instrument_id: str) -> bool:
        with self._mutex:
            return instrument_id in self._in_flight


# Shared by every ledger in this process
instrument_guard = InstrumentGuard()


class ChequeLedger:
    """Creates cheque instruments and applies status transitions transactionally"""

    def __init__(
        self,
        db: Session,
        publisher: StatusPublisher,
        obligations: ObligationRepository | None = None,
        guard: InstrumentGuard | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.publisher = publisher
        self.obligations = obligations or ObligationRepository(db)
        self.instruments = InstrumentRepository(db)
        self.recorder = AuditTrailRecorder(db)
        self.guard = guard or instrument_guard
        self.clock = clock

    async def create(
        self,
        obligation_id: str,
        cheque_number: str,
        cheque_amount_cents: int,
        cheque_date: date,
        created_by: str,
        currency: str | None = None,
        documents: Optional[List[EvidenceDocument]] = None,
    ) -> str:
        """
        Receive a cheque against an installment obligation.

        Returns:
            Id of the new instrument, in Received state

        Raises:
            ObligationNotFoundError: Unknown obligation
            ObligationNotInstallmentError: Obligation is a one-time payment
            UpstreamUnavailableError: Snapshot could not be published; nothing was stored
        """
        obligation = self.obligations.find(obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(obligation_id)
        if obligation.kind != ObligationKind.INSTALLMENT:
            raise ObligationNotInstallmentError(obligation_id, obligation.kind.value)

        now = self.clock()
        try:
            row = self.instruments.add(
                obligation_id=obligation_id,
                cheque_number=cheque_number,
                amount_cents=cheque_amount_cents,
                currency=currency or obligation.currency,
                cheque_date=cheque_date,
                created_by=created_by,
                created_at=now,
            )
            instrument = InstrumentRepository.to_domain(row)
            creation_event = self.recorder.append(
                instrument_id=instrument.instrument_id,
                previous_status=None,
                new_status=ChequeStatus.RECEIVED,
                acting_user=created_by,
                occurred_at=now,
                documents=documents,
            )

            new_due_date = reconcile(cheque_date, obligation.effective_due_date)
            if new_due_date != obligation.effective_due_date:
                obligation = self.obligations.extend_effective_due_date(obligation_id, new_due_date)
                due_date_extension_counter.inc()
                logger.info(
                    "Effective due date extended to cheque date",
                    extra={
                        "obligation_id": obligation_id,
                        "instrument_id": instrument.instrument_id,
                        "step": "due_date_reconciled",
                        "effective_due_date": new_due_date.isoformat(),
                    },
                )

            snapshot = build_cheque_snapshot(instrument, [creation_event], obligation.effective_due_date)
            await self.publisher.publish(instrument.instrument_id, snapshot)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        instrument_created_counter.inc()
        return instrument.instrument_id

    async def transition(
        self,
        instrument_id: str,
        target_status: ChequeStatus,
        acting_user: str,
        evidence: TransitionEvidence,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> StatusEvent:
        """
        Move an instrument to a new status.

        Raises:
            InstrumentNotFoundError: Unknown instrument
            InvalidTransitionError: Edge not in the state machine
            MissingEvidenceError: Required field for the target not supplied
            ConcurrentModificationError: Another writer changed the instrument
            IdempotencyKeyReusedError: Key already recorded for a different target
            UpstreamUnavailableError: Snapshot could not be published; rolled back
        """
        with self.guard.hold(instrument_id):
            row = self.instruments.get_record(instrument_id)
            if row is None:
                raise InstrumentNotFoundError(instrument_id)

            if idempotency_key is not None:
                replayed = self.recorder.find_by_idempotency_key(instrument_id, idempotency_key)
                if replayed is not None and replayed.new_status != target_status:
                    record_rejection("idempotency_key_reused")
                    raise IdempotencyKeyReusedError(
                        instrument_id, idempotency_key, replayed.new_status.value, target_status.value
                    )
                if replayed is not None:
                    logger.info(
                        "Replayed transition for known idempotency key",
                        extra={"instrument_id": instrument_id, "step": "transition_replayed"},
                    )
                    return replayed

            # Pick up commits made by other sessions since this row was loaded
            self.db.refresh(row)
            current = ChequeStatus(row.status)

            if expected_version is not None and expected_version != row.version:
                record_rejection("concurrent_modification")
                raise ConcurrentModificationError(
                    instrument_id, f"expected version {expected_version}, found {row.version}"
                )

            try:
                validate_transition(current, target_status, evidence)
            except InvalidTransitionError:
                record_rejection("invalid_transition")
                raise
            except MissingEvidenceError:
                record_rejection("missing_evidence")
                raise

            try:
                instrument = self.instruments.set_status(row, target_status)
                status_event = self.recorder.append(
                    instrument_id=instrument_id,
                    previous_status=current,
                    new_status=target_status,
                    acting_user=acting_user,
                    occurred_at=self.clock(),
                    reason=evidence.reason,
                    presentation_date=evidence.presentation_date,
                    clearance_date=evidence.clearance_date,
                    documents=evidence.documents,
                    idempotency_key=idempotency_key,
                )
                obligation = self.obligations.find(instrument.obligation_id)
                snapshot = build_cheque_snapshot(
                    instrument, self.recorder.history(instrument_id), obligation.effective_due_date
                )
                await self.publisher.publish(instrument_id, snapshot)
                self.db.commit()
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                record_rejection("concurrent_modification")
                raise ConcurrentModificationError(instrument_id) from e
            except UpstreamUnavailableError:
                self.db.rollback()
                record_rejection("upstream_unavailable")
                raise
            except Exception:
                self.db.rollback()
                raise

        record_transition(current.value, target_status.value)
        return status_event

    def get(self, instrument_id: str) -> Tuple[ChequeInstrument, List[StatusEvent]]:
        """Instrument and its full history; read-only, never takes the guard"""
        instrument = self.instruments.get(instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(instrument_id)
        return instrument, self.recorder.history(instrument_id)

    def snapshot(self, instrument_id: str) -> ChequeStatusSnapshot:
        """The record the publisher sends for the instrument's current state"""
        instrument, history = self.get(instrument_id)
        obligation = self.obligations.find(instrument.obligation_id)
        return build_cheque_snapshot(instrument, history, obligation.effective_due_date)

    def effective_due_date(self, instrument: ChequeInstrument) -> date:
        obligation = self.obligations.find(instrument.obligation_id)
        if obligation is None:
            raise ObligationNotFoundError(instrument.obligation_id)
        return obligation.effective_due_date
