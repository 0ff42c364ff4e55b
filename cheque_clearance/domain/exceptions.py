"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Command is missing data the caller must supply before retrying"""

    pass


class MissingEvidenceError(ValidationError):
    """Transition target requires evidence that was not supplied"""

    def __init__(self, target_status: str, field: str):
        self.target_status = target_status
        self.field = field
        super().__init__(f"Transition to {target_status} requires '{field}'")


class InvalidTransitionError(DomainException):
    """Requested edge is not part of the cheque state machine"""

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Illegal cheque transition {from_status} -> {to_status}")


class NotFoundError(DomainException):
    """Referenced entity does not exist"""

    pass


class InstrumentNotFoundError(NotFoundError):
    def __init__(self, instrument_id: str):
        self.instrument_id = instrument_id
        super().__init__(f"Cheque instrument {instrument_id} not found")


class ObligationNotFoundError(NotFoundError):
    def __init__(self, obligation_id: str):
        self.obligation_id = obligation_id
        super().__init__(f"Obligation {obligation_id} not found")


class ObligationNotInstallmentError(DomainException):
    """Cheques may only settle installment obligations"""

    def __init__(self, obligation_id: str, kind: str):
        self.obligation_id = obligation_id
        self.kind = kind
        super().__init__(
            f"Obligation {obligation_id} is a {kind} obligation; cheques can only pay installments"
        )


class ConcurrentModificationError(DomainException):
    """Another transition on the same instrument won the race"""

    def __init__(self, instrument_id: str, detail: str = "instrument was modified concurrently"):
        self.instrument_id = instrument_id
        super().__init__(f"Cheque instrument {instrument_id}: {detail}; re-read and retry")


class IdempotencyKeyReusedError(DomainException):
    """Idempotency key already recorded for a different transition"""

    def __init__(self, instrument_id: str, idempotency_key: str, recorded_status: str, requested_status: str):
        self.instrument_id = instrument_id
        self.idempotency_key = idempotency_key
        super().__init__(
            f"Idempotency key {idempotency_key!r} on instrument {instrument_id} was used for "
            f"{recorded_status}, not {requested_status}"
        )


class UpstreamUnavailableError(DomainException):
    """Obligation service could not be reached or refused the request"""

    pass


class AuditTrailImmutableError(DomainException):
    """Status history rows are append-only"""

    pass


class SnapshotDecodeError(DomainException):
    """Annotation bag could not be decoded into a known snapshot record"""

    pass
