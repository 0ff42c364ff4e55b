"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from cheque_clearance.infrastructure.clients.status_publisher import StatusPublisher
from cheque_clearance.infrastructure.clients.status_reader import StatusReader
from cheque_clearance.infrastructure.database.repositories import ObligationRepository
from cheque_clearance.infrastructure.database.session import get_db
from cheque_clearance.services.ledger import ChequeLedger
from cheque_clearance.utils.date_utils import utcnow


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock():
    """Time source for query-time projections"""
    return utcnow


def get_status_publisher() -> StatusPublisher:
    """Provide obligation service publisher instance"""
    return StatusPublisher()


def get_status_reader() -> StatusReader:
    """Provide obligation service reader instance"""
    return StatusReader()


def get_ledger(
    db: Session = Depends(get_db),
    publisher: StatusPublisher = Depends(get_status_publisher),
    clock=Depends(get_clock),
) -> ChequeLedger:
    """Ledger bound to the request's session, with its lookups passed in explicitly"""
    return ChequeLedger(db, publisher, obligations=ObligationRepository(db), clock=clock)
