from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .access.gate import RoleGate
from .certificates.mysql_certificate_repository import MySQLCertificateTemplateRepository
from .certificates.repository import CertificateTemplateRepository
from .certificates.service import CertificateService
from .checkin.qr_codes import QRCodeSigner
from .checkin.service import CheckInService
from .core.retry import RetryPolicy
from .database.connection import DatabaseConnection
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .events.service import EventService
from .registrations.mysql_registration_repository import MySQLRegistrationRepository
from .registrations.repository import RegistrationRepository
from .registrations.service import RegistrationService
from .storage.files import AttachmentStorage, LocalFileStorage
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    events_repo: EventRepository
    registrations_repo: RegistrationRepository
    templates_repo: CertificateTemplateRepository

    gate: RoleGate
    signer: QRCodeSigner
    storage: AttachmentStorage

    user_service: UserService
    event_service: EventService
    registration_service: RegistrationService
    checkin_service: CheckInService
    certificate_service: CertificateService

    conn: Optional[DatabaseConnection] = None


def wire(
    *,
    users_repo: UserRepository,
    events_repo: EventRepository,
    registrations_repo: RegistrationRepository,
    templates_repo: CertificateTemplateRepository,
    storage: AttachmentStorage,
    qr_secret: str,
    retry: RetryPolicy | None = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the services on top of the given repositories."""

    retry = retry or RetryPolicy()
    gate = RoleGate(users_repo)
    signer = QRCodeSigner(qr_secret)

    return Container(
        users_repo=users_repo,
        events_repo=events_repo,
        registrations_repo=registrations_repo,
        templates_repo=templates_repo,
        gate=gate,
        signer=signer,
        storage=storage,
        user_service=UserService(users_repo, gate),
        event_service=EventService(events_repo, gate, storage, retry=retry),
        registration_service=RegistrationService(registrations_repo, events_repo, gate, signer, retry=retry),
        checkin_service=CheckInService(registrations_repo, events_repo, users_repo, gate, signer, retry=retry),
        certificate_service=CertificateService(templates_repo, registrations_repo, events_repo, users_repo, gate, storage),
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    qr_secret: str,
    upload_dir: str,
    upload_url_prefix: str = "/uploads",
    retry: RetryPolicy | None = None,
) -> Container:
    conn = DatabaseConnection.from_dict(db_config)
    return wire(
        users_repo=MySQLUserRepository(conn),
        events_repo=MySQLEventRepository(conn),
        registrations_repo=MySQLRegistrationRepository(conn),
        templates_repo=MySQLCertificateTemplateRepository(conn),
        storage=LocalFileStorage(upload_dir, url_prefix=upload_url_prefix),
        qr_secret=qr_secret,
        retry=retry,
        conn=conn,
    )
