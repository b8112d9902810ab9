from __future__ import annotations

from ..core.enums import RegistrationStatus
from ..core.exceptions import InvalidTransitionError

# attended is terminal; only the check-in processor moves a registration there
ALLOWED_REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING: frozenset({RegistrationStatus.APPROVED, RegistrationStatus.REJECTED}),
    RegistrationStatus.APPROVED: frozenset({RegistrationStatus.REJECTED}),
    RegistrationStatus.REJECTED: frozenset({RegistrationStatus.APPROVED}),
    RegistrationStatus.ATTENDED: frozenset(),
}


def ensure_transition(current: RegistrationStatus, new: RegistrationStatus) -> None:
    if new not in ALLOWED_REGISTRATION_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"Registration cannot move from {current.value} to {new.value}")


def reactivates(current: RegistrationStatus, new: RegistrationStatus) -> bool:
    """True when the change makes an inactive registration count against capacity again."""

    return current == RegistrationStatus.REJECTED and new == RegistrationStatus.APPROVED
