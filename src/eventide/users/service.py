from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..access.gate import RoleGate
from ..access.policy import Action, Target
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_choice, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, NotFoundError
from .model import ProfileDetails, UserProfile
from .repository import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Use cases around user profiles and role management."""

    def __init__(self, users: UserRepository, gate: RoleGate):
        self._users = users
        self._gate = gate

    def ensure_profile(self, *, caller_id: str, email: Optional[str] = None, now: datetime | None = None) -> UserProfile:
        """Create the caller's profile on first sign-in (role student). Idempotent."""

        uid = (caller_id or "").strip()
        if not uid:
            raise AuthenticationError("Missing caller identity")

        existing = self._users.get_by_uid(uid)
        if existing:
            return existing

        if self._users.create(uid=uid, email=optional_text(email), role=Role.STUDENT, now=now or now_local()):
            logger.info("created profile for %s", uid)

        profile = self._users.get_by_uid(uid)
        if not profile:
            raise NotFoundError("Profile could not be created")
        return profile

    def get_profile(self, *, caller_id: str) -> UserProfile:
        return self._gate.require(caller_id, Action.MANAGE_OWN_PROFILE)

    def update_profile(
        self,
        *,
        caller_id: str,
        name: str,
        phone: str,
        department: str,
        register_no: str,
        batch_year: str,
        now: datetime | None = None,
    ) -> UserProfile:
        caller = self._gate.require(caller_id, Action.MANAGE_OWN_PROFILE)
        details = ProfileDetails(
            name=require_non_empty(name, "Name"),
            phone=require_non_empty(phone, "Phone"),
            department=require_non_empty(department, "Department"),
            register_no=require_non_empty(register_no, "Register number"),
            batch_year=require_non_empty(batch_year, "Batch year"),
        )
        self._users.update_details(uid=caller.uid, details=details, now=now or now_local())
        return self._gate.resolve(caller.uid)

    def list_users(self, *, caller_id: str, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[UserProfile]:
        self._gate.require(caller_id, Action.LIST_USERS)
        return self._users.list_all(limit=int(limit))

    def set_user_role(self, *, caller_id: str, target_uid: str, new_role, now: datetime | None = None) -> UserProfile:
        role = require_choice(new_role, Role, "Role")
        target_uid = require_non_empty(target_uid, "User id")
        caller = self._gate.require(
            caller_id,
            Action.SET_ROLE,
            Target(subject_uid=target_uid, new_role=role),
        )

        subject = self._users.get_by_uid(target_uid)
        if not subject:
            raise NotFoundError("User not found")

        self._users.set_role(uid=target_uid, role=role, now=now or now_local())
        logger.info("role of %s changed %s -> %s by %s", target_uid, subject.role.value, role.value, caller.uid)

        updated = self._users.get_by_uid(target_uid)
        if not updated:
            raise NotFoundError("User not found")
        return updated
