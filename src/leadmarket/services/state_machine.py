"""Status transition rules for agent verification and property listings."""

from leadmarket.domain.enums import PropertyStatus, VerificationStatus
from leadmarket.services.errors import InvalidTransitionError

V = VerificationStatus
P = PropertyStatus

# from_status -> allowed target statuses
VERIFICATION_TRANSITIONS: dict[VerificationStatus, set[VerificationStatus]] = {
    V.PENDING: {V.APPROVED, V.REJECTED},
    V.APPROVED: set(),
    V.REJECTED: set(),
}

PROPERTY_TRANSITIONS: dict[PropertyStatus, set[PropertyStatus]] = {
    P.PENDING: {P.ACTIVE},
    P.ACTIVE: {P.EXPIRED, P.ARCHIVED},
    P.EXPIRED: {P.ARCHIVED},
    P.ARCHIVED: set(),
}


def validate_verification_transition(current: str, target: str) -> VerificationStatus:
    """Return the target status, or raise InvalidTransitionError."""
    current_status = VerificationStatus(current)
    target_status = VerificationStatus(target)
    if target_status not in VERIFICATION_TRANSITIONS[current_status]:
        raise InvalidTransitionError("verification", current_status.value, target_status.value)
    return target_status


def validate_property_transition(current: str, target: str) -> PropertyStatus:
    """Return the target status, or raise InvalidTransitionError."""
    current_status = PropertyStatus(current)
    target_status = PropertyStatus(target)
    if target_status not in PROPERTY_TRANSITIONS[current_status]:
        raise InvalidTransitionError("property", current_status.value, target_status.value)
    return target_status
