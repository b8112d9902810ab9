from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import ProfileDetails, UserProfile


class UserRepository(Protocol):
    """Repository interface for user profiles.

    Note (DIP): the service layer depends on this interface, not on a concrete DB.
    """

    def get_by_uid(self, uid: str) -> Optional[UserProfile]:
        raise NotImplementedError

    def create(self, *, uid: str, email: Optional[str], role: Role, now: datetime) -> bool:
        """Insert a profile; returns False when the uid already exists."""

        raise NotImplementedError

    def update_details(self, *, uid: str, details: ProfileDetails, now: datetime) -> bool:
        raise NotImplementedError

    def set_role(self, *, uid: str, role: Role, now: datetime) -> bool:
        raise NotImplementedError

    def list_all(self, *, limit: int) -> Sequence[UserProfile]:
        """All profiles ordered by email ascending."""

        raise NotImplementedError
