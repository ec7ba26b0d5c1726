"""Subscription status transitions."""

from __future__ import annotations

from qaforum.errors import Conflict

PENDING = "pending"
ACTIVE = "active"
CANCELLED = "cancelled"
EXPIRED = "expired"

VALID_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [ACTIVE, CANCELLED],
    ACTIVE: [CANCELLED, EXPIRED],
    CANCELLED: [],
    EXPIRED: [],
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Raise Conflict unless ``current_status`` may move to ``target_status``."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        msg = f"Invalid transition: {current_status} -> {target_status}"
        raise Conflict(msg, status_code=400, validTransitions=valid)
