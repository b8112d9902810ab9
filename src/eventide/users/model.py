from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class UserProfile:
    """Domain entity: a user known to the identity provider.

    Note: Plain data object, no DB access code here.
    """

    uid: str
    email: Optional[str]
    role: Role
    name: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    register_no: Optional[str] = None
    batch_year: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ProfileDetails:
    """Fields a user edits on their own account page (printed on certificates)."""

    name: str
    phone: str
    department: str
    register_no: str
    batch_year: str
