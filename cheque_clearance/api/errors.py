"""Translation of domain exceptions into HTTP errors"""

import logging
from fastapi import HTTPException

from cheque_clearance.domain.exceptions import (
    ConcurrentModificationError,
    DomainException,
    IdempotencyKeyReusedError,
    InvalidTransitionError,
    NotFoundError,
    ObligationNotInstallmentError,
    UpstreamUnavailableError,
    ValidationError,
)


def to_http_error(e: DomainException, request_id: str) -> HTTPException:
    """Map a domain failure to the status code the caller can act on"""
    if isinstance(e, NotFoundError):
        status_code = 404
    elif isinstance(e, (InvalidTransitionError, ConcurrentModificationError, IdempotencyKeyReusedError)):
        status_code = 409
    elif isinstance(e, (ValidationError, ObligationNotInstallmentError)):
        status_code = 422
    elif isinstance(e, UpstreamUnavailableError):
        status_code = 503
    else:
        status_code = 500

    if status_code >= 500:
        logging.error(f"{type(e).__name__}: {e}", extra={"request_id": request_id})
    else:
        logging.warning(f"{type(e).__name__}: {e}", extra={"request_id": request_id})

    return HTTPException(status_code=status_code, detail=str(e))
