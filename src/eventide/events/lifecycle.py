from __future__ import annotations

from ..core.enums import EventStatus
from ..core.exceptions import InvalidTransitionError

# completed is only ever reached explicitly, never by the date passing
ALLOWED_EVENT_TRANSITIONS: dict[EventStatus, frozenset[EventStatus]] = {
    EventStatus.DRAFT: frozenset({EventStatus.PUBLISHED}),
    EventStatus.PUBLISHED: frozenset({EventStatus.ARCHIVED, EventStatus.COMPLETED}),
    EventStatus.ARCHIVED: frozenset({EventStatus.DRAFT}),
    EventStatus.COMPLETED: frozenset(),
}


def can_transition(current: EventStatus, new: EventStatus) -> bool:
    return new in ALLOWED_EVENT_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: EventStatus, new: EventStatus) -> None:
    if not can_transition(current, new):
        raise InvalidTransitionError(f"Event cannot move from {current.value} to {new.value}")
