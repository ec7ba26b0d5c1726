"""Subscription status transitions."""

import pytest

from qaforum.errors import Conflict
from qaforum.subscriptions.state import ACTIVE, CANCELLED, EXPIRED, PENDING, validate_transition


class TestValidateTransition:
    @pytest.mark.parametrize(
        ("current", "target"),
        [(PENDING, ACTIVE), (PENDING, CANCELLED), (ACTIVE, CANCELLED), (ACTIVE, EXPIRED)],
    )
    def test_allowed(self, current: str, target: str):
        validate_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [(ACTIVE, ACTIVE), (CANCELLED, ACTIVE), (EXPIRED, ACTIVE), (PENDING, EXPIRED)],
    )
    def test_rejected_as_bad_request(self, current: str, target: str):
        with pytest.raises(Conflict) as exc_info:
            validate_transition(current, target)
        assert exc_info.value.status_code == 400
