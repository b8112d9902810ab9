from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CertificateTemplate:
    """HTML certificate for one event; ``placeholder_name`` is replaced by the student's name."""

    event_id: int
    template_html: str
    placeholder_name: str
    uploaded_by: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class IssuedCertificate:
    registration_id: int
    certificate_url: str
    html: str
