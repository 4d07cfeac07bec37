"""Unit tests for verification and listing status transitions."""

import pytest

from leadmarket.domain.enums import PropertyStatus, VerificationStatus
from leadmarket.services.errors import InvalidTransitionError
from leadmarket.services.state_machine import (
    PROPERTY_TRANSITIONS,
    VERIFICATION_TRANSITIONS,
    validate_property_transition,
    validate_verification_transition,
)

V = VerificationStatus
P = PropertyStatus


# ---------------------------------------------------------------------------
# Every transition in the maps is accepted
# ---------------------------------------------------------------------------


class TestValidTransitions:
    @pytest.mark.parametrize(
        "from_status,to_status",
        [(f, t) for f, targets in VERIFICATION_TRANSITIONS.items() for t in targets],
    )
    def test_verification(self, from_status, to_status):
        assert validate_verification_transition(from_status.value, to_status.value) == to_status

    @pytest.mark.parametrize(
        "from_status,to_status",
        [(f, t) for f, targets in PROPERTY_TRANSITIONS.items() for t in targets],
    )
    def test_property(self, from_status, to_status):
        assert validate_property_transition(from_status.value, to_status.value) == to_status


# ---------------------------------------------------------------------------
# Terminal states and skipped steps are refused
# ---------------------------------------------------------------------------


class TestInvalidTransitions:
    @pytest.mark.parametrize("terminal", [V.APPROVED, V.REJECTED])
    @pytest.mark.parametrize("target", list(V))
    def test_decided_verification_is_final(self, terminal, target):
        with pytest.raises(InvalidTransitionError):
            validate_verification_transition(terminal.value, target.value)

    @pytest.mark.parametrize("target", list(P))
    def test_archived_is_terminal(self, target):
        with pytest.raises(InvalidTransitionError):
            validate_property_transition(P.ARCHIVED.value, target.value)

    def test_expired_cannot_reactivate(self):
        with pytest.raises(InvalidTransitionError) as exc:
            validate_property_transition("expired", "active")
        assert exc.value.status_code == 409
        assert exc.value.current_status == "expired"
        assert exc.value.target_status == "active"

    def test_pending_cannot_skip_to_expired(self):
        with pytest.raises(InvalidTransitionError):
            validate_property_transition("pending", "expired")

    def test_unknown_status_raises_value_error(self):
        with pytest.raises(ValueError):
            validate_property_transition("sold", "archived")
