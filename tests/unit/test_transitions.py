"""Unit tests for the cheque status state machine"""

import dataclasses
import pytest
from datetime import date
from cheque_clearance.domain.models import ChequeStatus, TransitionEvidence
from cheque_clearance.domain.transitions import (
    LEGAL_TRANSITIONS,
    allowed_targets,
    is_terminal,
    validate_transition,
)
from cheque_clearance.domain.exceptions import (
    InvalidTransitionError,
    MissingEvidenceError,
    ValidationError,
)


FULL_EVIDENCE = TransitionEvidence(
    reason="insufficient funds",
    presentation_date=date(2025, 9, 2),
    clearance_date=date(2025, 9, 4),
)

LEGAL_EDGES = [(source, target) for source, targets in LEGAL_TRANSITIONS.items() for target in sorted(targets)]
ILLEGAL_EDGES = [
    (source, target)
    for source in ChequeStatus
    for target in ChequeStatus
    if target not in LEGAL_TRANSITIONS[source]
]

REQUIRED_FIELD = {
    ChequeStatus.PRESENTED: "presentation_date",
    ChequeStatus.CLEARED: "clearance_date",
    ChequeStatus.REJECTED: "reason",
    ChequeStatus.BOUNCED: "reason",
    ChequeStatus.RETURNED: "reason",
}


def test_legal_edge_table():
    """Test the exact set of legal edges"""
    assert set(LEGAL_EDGES) == {
        (ChequeStatus.RECEIVED, ChequeStatus.PRESENTED),
        (ChequeStatus.RECEIVED, ChequeStatus.RETURNED),
        (ChequeStatus.PRESENTED, ChequeStatus.CLEARED),
        (ChequeStatus.PRESENTED, ChequeStatus.REJECTED),
        (ChequeStatus.PRESENTED, ChequeStatus.BOUNCED),
        (ChequeStatus.PRESENTED, ChequeStatus.RETURNED),
        (ChequeStatus.RETURNED, ChequeStatus.PRESENTED),
    }


@pytest.mark.parametrize("current,target", ILLEGAL_EDGES)
def test_illegal_edges_rejected(current, target):
    """Every pair outside the table fails even with complete evidence"""
    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition(current, target, FULL_EVIDENCE)

    assert exc_info.value.from_status == current.value
    assert exc_info.value.to_status == target.value
    assert f"{current.value} -> {target.value}" in str(exc_info.value)


@pytest.mark.parametrize("current,target", LEGAL_EDGES)
def test_legal_edges_accept_required_evidence(current, target):
    validate_transition(current, target, FULL_EVIDENCE)


@pytest.mark.parametrize("current,target", LEGAL_EDGES)
def test_legal_edges_require_their_evidence(current, target):
    """Dropping the edge's required field fails with a ValidationError naming it"""
    field = REQUIRED_FIELD[target]
    evidence = dataclasses.replace(FULL_EVIDENCE, **{field: None})

    with pytest.raises(MissingEvidenceError) as exc_info:
        validate_transition(current, target, evidence)

    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.field == field
    assert exc_info.value.target_status == target.value


@pytest.mark.parametrize("target", [ChequeStatus.REJECTED, ChequeStatus.BOUNCED, ChequeStatus.RETURNED])
def test_blank_reason_is_missing(target):
    current = ChequeStatus.PRESENTED
    with pytest.raises(MissingEvidenceError):
        validate_transition(current, target, TransitionEvidence(reason="   "))


def test_illegal_edge_reported_before_missing_evidence():
    """Received -> Cleared is illegal; the absent clearance date is not the error"""
    with pytest.raises(InvalidTransitionError):
        validate_transition(ChequeStatus.RECEIVED, ChequeStatus.CLEARED, TransitionEvidence())


def test_only_required_field_is_needed():
    """Presenting needs a presentation date and nothing else"""
    validate_transition(
        ChequeStatus.RECEIVED,
        ChequeStatus.PRESENTED,
        TransitionEvidence(presentation_date=date(2025, 9, 2)),
    )


def test_terminal_states():
    assert is_terminal(ChequeStatus.CLEARED)
    assert is_terminal(ChequeStatus.REJECTED)
    assert is_terminal(ChequeStatus.BOUNCED)
    assert not is_terminal(ChequeStatus.RETURNED)
    assert allowed_targets(ChequeStatus.RETURNED) == {ChequeStatus.PRESENTED}
