"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from typing import Generator, List, Tuple
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from cheque_clearance.api.main import create_app
from cheque_clearance.api.dependencies import get_clock, get_status_publisher
from cheque_clearance.domain.exceptions import UpstreamUnavailableError
from cheque_clearance.domain.models import ObligationKind
from cheque_clearance.domain.snapshot import PaymentSnapshot
from cheque_clearance.infrastructure.database.models import Base
from cheque_clearance.infrastructure.database.repositories import ObligationRepository
from cheque_clearance.infrastructure.database.session import get_db, make_engine
from cheque_clearance.services.ledger import ChequeLedger, InstrumentGuard


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = make_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FrozenClock:
    """Settable time source shared by the ledger and the projections"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, year: int, month: int, day: int) -> None:
        self.now = datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


class RecordingPublisher:
    """Publisher double that keeps every bag it was asked to send"""

    def __init__(self):
        self.published: List[Tuple[str, dict]] = []

    async def publish(self, order_id: str, snapshot: PaymentSnapshot) -> None:
        self.published.append((order_id, snapshot.to_notes()))

    def latest(self, order_id: str) -> dict:
        return [notes for oid, notes in self.published if oid == order_id][-1]


class FailingPublisher:
    """Publisher double for an unreachable obligation service"""

    def __init__(self):
        self.attempts = 0

    async def publish(self, order_id: str, snapshot: PaymentSnapshot) -> None:
        self.attempts += 1
        raise UpstreamUnavailableError("Obligation service unavailable after 5 attempts")


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 9, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def ledger(db: Session, publisher: RecordingPublisher, clock: FrozenClock) -> ChequeLedger:
    """Ledger with its own guard so tests never share in-flight claims"""
    return ChequeLedger(db, publisher, guard=InstrumentGuard(), clock=clock)


@pytest.fixture
def installment(db: Session):
    """Installment due 2025-09-15"""
    obligation = ObligationRepository(db).register(
        obligation_id="inst-001",
        kind=ObligationKind.INSTALLMENT,
        amount_cents=125000,
        currency="USD",
        due_date=date(2025, 9, 15),
    )
    db.commit()
    return obligation


@pytest.fixture
def one_time_obligation(db: Session):
    obligation = ObligationRepository(db).register(
        obligation_id="once-001",
        kind=ObligationKind.ONE_TIME,
        amount_cents=50000,
        currency="USD",
        due_date=date(2025, 9, 15),
    )
    db.commit()
    return obligation


@pytest.fixture
def client(db: Session, publisher: RecordingPublisher, clock: FrozenClock) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_status_publisher] = lambda: publisher
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)
