"""Role-based authorization decisions.

Every mutating operation asks :func:`authorize` before touching storage. The
decision only depends on the caller's role and uid and on who owns the target,
so the same inputs always give the same answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.enums import Role
from ..users.model import UserProfile


class Action(str, Enum):
    VIEW_PUBLISHED = "view_published"
    MANAGE_OWN_PROFILE = "manage_own_profile"

    CREATE_EVENT = "create_event"
    VIEW_EVENT = "view_event"
    EDIT_EVENT = "edit_event"
    CHANGE_EVENT_STATUS = "change_event_status"
    LIST_MANAGED_EVENTS = "list_managed_events"

    REGISTER = "register"
    VIEW_REGISTRATION = "view_registration"
    LIST_EVENT_REGISTRATIONS = "list_event_registrations"
    CHANGE_REGISTRATION_STATUS = "change_registration_status"
    CHECK_IN = "check_in"

    MANAGE_CERTIFICATE_TEMPLATE = "manage_certificate_template"
    ISSUE_CERTIFICATE = "issue_certificate"

    LIST_USERS = "list_users"
    SET_ROLE = "set_role"


# Actions scoped to one event: organizers need to own it
EVENT_MANAGEMENT_ACTIONS = frozenset(
    {
        Action.VIEW_EVENT,
        Action.EDIT_EVENT,
        Action.CHANGE_EVENT_STATUS,
        Action.LIST_EVENT_REGISTRATIONS,
        Action.CHANGE_REGISTRATION_STATUS,
        Action.CHECK_IN,
        Action.MANAGE_CERTIFICATE_TEMPLATE,
    }
)

ROLE_MANAGEMENT_ACTIONS = frozenset({Action.LIST_USERS, Action.SET_ROLE})

# Open to the owning student as well as to whoever manages the event
OWNER_OR_MANAGER_ACTIONS = frozenset({Action.VIEW_REGISTRATION, Action.ISSUE_CERTIFICATE})

EVERYONE_ACTIONS = frozenset({Action.VIEW_PUBLISHED, Action.MANAGE_OWN_PROFILE})


@dataclass(frozen=True)
class Target:
    """What an action is aimed at. Unused fields stay None."""

    event_organizer_id: Optional[str] = None
    registration_student_id: Optional[str] = None
    subject_uid: Optional[str] = None
    new_role: Optional[Role] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


NO_TARGET = Target()


def authorize(caller: UserProfile, action: Action, target: Target = NO_TARGET) -> Decision:
    if action in EVERYONE_ACTIONS:
        return Decision.allow()

    if caller.role == Role.ADMIN:
        if action == Action.SET_ROLE and target.subject_uid == caller.uid and target.new_role != Role.ADMIN:
            return Decision.deny("Admins cannot remove their own admin role")
        return Decision.allow()

    if action in ROLE_MANAGEMENT_ACTIONS:
        return Decision.deny("Only admins can manage user roles")

    if caller.role == Role.COADMIN:
        return Decision.allow()

    if caller.role == Role.ORGANIZER:
        if action in (Action.CREATE_EVENT, Action.LIST_MANAGED_EVENTS):
            return Decision.allow()
        if action in EVENT_MANAGEMENT_ACTIONS or action in OWNER_OR_MANAGER_ACTIONS:
            if target.event_organizer_id is not None and target.event_organizer_id == caller.uid:
                return Decision.allow()
            return Decision.deny("Organizers can only manage their own events")
        return Decision.deny("Organizers cannot perform this action")

    if caller.role == Role.STUDENT:
        if action == Action.REGISTER:
            return Decision.allow()
        if action in OWNER_OR_MANAGER_ACTIONS:
            if target.registration_student_id is not None and target.registration_student_id == caller.uid:
                return Decision.allow()
            return Decision.deny("Students can only access their own registrations")
        return Decision.deny("Students cannot perform this action")

    return Decision.deny(f"Unknown role {caller.role!r}")
