from __future__ import annotations

import logging

from ..core.exceptions import AuthenticationError, AuthorizationError
from ..users.model import UserProfile
from ..users.repository import UserRepository
from .policy import NO_TARGET, Action, Target, authorize

logger = logging.getLogger(__name__)


class RoleGate:
    """Resolves a caller to its profile and enforces :func:`authorize`.

    The role is re-read on every call so role changes apply immediately.
    """

    def __init__(self, users: UserRepository):
        self._users = users

    def resolve(self, caller_id: str) -> UserProfile:
        uid = (caller_id or "").strip()
        if not uid:
            raise AuthenticationError("Missing caller identity")
        caller = self._users.get_by_uid(uid)
        if not caller:
            raise AuthenticationError("Unknown caller, create a profile first")
        return caller

    def require(self, caller_id: str, action: Action, target: Target = NO_TARGET) -> UserProfile:
        caller = self.resolve(caller_id)
        self.check(caller, action, target)
        return caller

    def check(self, caller: UserProfile, action: Action, target: Target = NO_TARGET) -> None:
        decision = authorize(caller, action, target)
        if not decision.allowed:
            logger.info("denied %s for %s (%s): %s", action.value, caller.uid, caller.role.value, decision.reason)
            raise AuthorizationError(decision.reason or "You do not have permission")

    def allows(self, caller: UserProfile, action: Action, target: Target = NO_TARGET) -> bool:
        return authorize(caller, action, target).allowed
