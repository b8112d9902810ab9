from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import CheckInOutcome


@dataclass(frozen=True)
class CheckInResult:
    outcome: CheckInOutcome
    registration_id: int
    student_id: str
    checked_in_at: datetime
    student_name: Optional[str] = None
