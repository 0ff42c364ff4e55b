"""Cheque clearance state machine - legal edges and required evidence per edge"""

from typing import Dict, FrozenSet
from cheque_clearance.domain.models import ChequeStatus, TransitionEvidence
from cheque_clearance.domain.exceptions import InvalidTransitionError, MissingEvidenceError


LEGAL_TRANSITIONS: Dict[ChequeStatus, FrozenSet[ChequeStatus]] = {
    ChequeStatus.RECEIVED: frozenset({ChequeStatus.PRESENTED, ChequeStatus.RETURNED}),
    ChequeStatus.PRESENTED: frozenset(
        {ChequeStatus.CLEARED, ChequeStatus.REJECTED, ChequeStatus.BOUNCED, ChequeStatus.RETURNED}
    ),
    ChequeStatus.RETURNED: frozenset({ChequeStatus.PRESENTED}),
    ChequeStatus.CLEARED: frozenset(),
    ChequeStatus.REJECTED: frozenset(),
    ChequeStatus.BOUNCED: frozenset(),
}

# Targets that must be justified with a free-text reason
REASON_REQUIRED = frozenset({ChequeStatus.REJECTED, ChequeStatus.BOUNCED, ChequeStatus.RETURNED})


def is_terminal(status: ChequeStatus) -> bool:
    return not LEGAL_TRANSITIONS[status]


def allowed_targets(status: ChequeStatus) -> FrozenSet[ChequeStatus]:
    return LEGAL_TRANSITIONS[status]


def validate_transition(
    current: ChequeStatus,
    target: ChequeStatus,
    evidence: TransitionEvidence,
) -> None:
    """
    Check that current -> target is a legal edge and carries its evidence.

    Edge legality is checked before evidence, so an illegal edge is always
    reported as such even when the evidence is also incomplete.

    Raises:
        InvalidTransitionError: Edge not in the state machine
        MissingEvidenceError: Required field for the target is absent
    """
    if target not in LEGAL_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)

    if target == ChequeStatus.PRESENTED and evidence.presentation_date is None:
        raise MissingEvidenceError(target.value, "presentation_date")

    if target == ChequeStatus.CLEARED and evidence.clearance_date is None:
        raise MissingEvidenceError(target.value, "clearance_date")

    if target in REASON_REQUIRED and not (evidence.reason and evidence.reason.strip()):
        raise MissingEvidenceError(target.value, "reason")
