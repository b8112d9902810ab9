from __future__ import annotations

import csv
import io
import threading

import pytest

from eventide.core.enums import EventStatus, RegistrationStatus, Role
from eventide.core.exceptions import (
    AlreadyRegisteredError,
    AuthorizationError,
    CapacityExceededError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    TransientError,
    ValidationError,
)


def _run_concurrently(fns):
    results: list[object] = [None] * len(fns)
    barrier = threading.Barrier(len(fns))

    def worker(i, fn):
        barrier.wait()
        try:
            results[i] = fn()
        except DomainError as e:
            results[i] = e

    threads = [threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(fns)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_register_creates_pending_registration_with_signed_code(container, people, make_event):
    event_id = make_event()

    reg = container.registration_service.register(caller_id="stu-1", event_id=event_id)

    assert reg.status == RegistrationStatus.PENDING
    assert reg.student_id == "stu-1"
    payload = container.signer.parse(reg.qr_code_data)
    assert (payload.event_id, payload.student_id) == (event_id, "stu-1")


def test_only_students_register(container, people, make_event):
    event_id = make_event()
    with pytest.raises(AuthorizationError):
        container.registration_service.register(caller_id="org-1", event_id=event_id)


@pytest.mark.parametrize("status", [EventStatus.DRAFT, EventStatus.ARCHIVED, EventStatus.COMPLETED])
def test_register_requires_published_event(container, people, make_event, status):
    event_id = make_event(status=status)
    with pytest.raises(NotFoundError):
        container.registration_service.register(caller_id="stu-1", event_id=event_id)


def test_register_unknown_event(container, people):
    with pytest.raises(NotFoundError):
        container.registration_service.register(caller_id="stu-1", event_id=999)


def test_duplicate_registration_rejected(container, people, make_event):
    event_id = make_event()
    container.registration_service.register(caller_id="stu-1", event_id=event_id)

    with pytest.raises(AlreadyRegisteredError):
        container.registration_service.register(caller_id="stu-1", event_id=event_id)


def test_full_event_rejects_next_student(container, people, make_event):
    event_id = make_event(capacity=1)
    container.registration_service.register(caller_id="stu-1", event_id=event_id)

    with pytest.raises(CapacityExceededError):
        container.registration_service.register(caller_id="stu-2", event_id=event_id)


def test_rejected_registration_frees_a_seat(container, people, make_event):
    event_id = make_event(capacity=1)
    svc = container.registration_service
    first = svc.register(caller_id="stu-1", event_id=event_id)
    svc.update_registration_status(caller_id="org-1", registration_id=first.registration_id, new_status="rejected")

    second = svc.register(caller_id="stu-2", event_id=event_id)

    assert second.status == RegistrationStatus.PENDING


def test_concurrent_registrations_never_exceed_capacity(container, people, make_event, db):
    event_id = make_event(capacity=2)
    svc = container.registration_service

    results = _run_concurrently(
        [lambda uid=uid: svc.register(caller_id=uid, event_id=event_id) for uid in ("stu-1", "stu-2", "stu-3")]
    )

    created = [r for r in results if not isinstance(r, Exception)]
    full = [r for r in results if isinstance(r, CapacityExceededError)]
    assert len(created) == 2
    assert len(full) == 1
    assert len(db.active_for_event(event_id)) == 2


def test_concurrent_duplicate_registration_keeps_one_active(container, people, make_event, db):
    event_id = make_event(capacity=10)
    svc = container.registration_service

    results = _run_concurrently([lambda: svc.register(caller_id="stu-1", event_id=event_id)] * 4)

    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert all(isinstance(r, AlreadyRegisteredError) for r in results if isinstance(r, Exception))
    assert len(db.active_for_event(event_id)) == 1


@pytest.mark.parametrize(
    "path, allowed",
    [
        (["approved"], True),
        (["rejected"], True),
        (["approved", "rejected"], True),
        (["rejected", "approved"], True),
        (["pending"], False),
        (["approved", "pending"], False),
        (["approved", "approved"], False),
        (["attended"], False),
    ],
)
def test_registration_transitions(container, people, make_event, path, allowed):
    event_id = make_event()
    svc = container.registration_service
    reg = svc.register(caller_id="stu-1", event_id=event_id)

    def walk():
        current = reg
        for status in path:
            current = svc.update_registration_status(
                caller_id="org-1", registration_id=reg.registration_id, new_status=status
            )
        return current

    if allowed:
        assert walk().status == RegistrationStatus(path[-1])
    else:
        with pytest.raises(InvalidTransitionError):
            walk()


def test_attended_is_terminal(container, people, make_event):
    event_id = make_event()
    svc = container.registration_service
    reg = svc.register(caller_id="stu-1", event_id=event_id)
    container.checkin_service.check_in(caller_id="org-1", event_id=event_id, code=reg.qr_code_data)

    for status in ("approved", "rejected", "pending"):
        with pytest.raises(InvalidTransitionError):
            svc.update_registration_status(caller_id="org-1", registration_id=reg.registration_id, new_status=status)


def test_reapproval_respects_capacity(container, people, make_event, db):
    event_id = make_event(capacity=1)
    svc = container.registration_service
    first = svc.register(caller_id="stu-1", event_id=event_id)
    svc.update_registration_status(caller_id="org-1", registration_id=first.registration_id, new_status="rejected")
    svc.register(caller_id="stu-2", event_id=event_id)

    with pytest.raises(CapacityExceededError):
        svc.update_registration_status(caller_id="org-1", registration_id=first.registration_id, new_status="approved")

    assert svc.get_registration(first.registration_id).status == RegistrationStatus.REJECTED
    assert len(db.active_for_event(event_id)) == 1


def test_reapproval_blocked_by_newer_active_registration(container, people, make_event):
    event_id = make_event(capacity=5)
    svc = container.registration_service
    first = svc.register(caller_id="stu-1", event_id=event_id)
    svc.update_registration_status(caller_id="org-1", registration_id=first.registration_id, new_status="rejected")
    svc.register(caller_id="stu-1", event_id=event_id)

    with pytest.raises(AlreadyRegisteredError):
        svc.update_registration_status(caller_id="org-1", registration_id=first.registration_id, new_status="approved")


def test_status_change_requires_event_manager(container, people, make_event):
    event_id = make_event()
    reg = container.registration_service.register(caller_id="stu-1", event_id=event_id)

    for caller in ("stu-1", "org-2"):
        with pytest.raises(AuthorizationError):
            container.registration_service.update_registration_status(
                caller_id=caller, registration_id=reg.registration_id, new_status="approved"
            )

    approved = container.registration_service.update_registration_status(
        caller_id="coadmin-1", registration_id=reg.registration_id, new_status="approved"
    )
    assert approved.status == RegistrationStatus.APPROVED


def test_status_change_retries_a_lookup_blip(container, people, make_event, monkeypatch):
    event_id = make_event()
    reg = container.registration_service.register(caller_id="stu-1", event_id=event_id)
    repo = container.registrations_repo
    get_by_id = repo.get_by_id
    calls = {"n": 0}

    def flaky(registration_id):
        calls["n"] += 1
        if calls["n"] == 1:
            raise TransientError("database unavailable")
        return get_by_id(registration_id)

    monkeypatch.setattr(repo, "get_by_id", flaky)

    approved = container.registration_service.update_registration_status(
        caller_id="org-1", registration_id=reg.registration_id, new_status="approved"
    )
    assert approved.status == RegistrationStatus.APPROVED
    assert calls["n"] >= 3


def test_attended_student_can_register_again_and_takes_a_new_seat(container, people, make_event, db):
    event_id = make_event(capacity=2)
    svc = container.registration_service
    first = svc.register(caller_id="stu-1", event_id=event_id)
    container.checkin_service.check_in(caller_id="org-1", event_id=event_id, code=first.qr_code_data)

    second = svc.register(caller_id="stu-1", event_id=event_id)

    assert second.registration_id != first.registration_id
    assert second.status == RegistrationStatus.PENDING
    assert svc.get_registration(first.registration_id).status == RegistrationStatus.ATTENDED
    assert [r.registration_id for r in db.active_for_event(event_id)] == [second.registration_id]


def test_qr_png_for_owner_only_while_active(container, people, make_event):
    event_id = make_event()
    svc = container.registration_service
    reg = svc.register(caller_id="stu-1", event_id=event_id)

    png = svc.qr_code_png(caller_id="stu-1", registration_id=reg.registration_id)
    assert png.startswith(b"\x89PNG")

    with pytest.raises(AuthorizationError):
        svc.qr_code_png(caller_id="stu-2", registration_id=reg.registration_id)

    svc.update_registration_status(caller_id="org-1", registration_id=reg.registration_id, new_status="rejected")
    with pytest.raises(ValidationError):
        svc.qr_code_png(caller_id="stu-1", registration_id=reg.registration_id)


def test_listings_and_csv_export(container, people, make_event, add_user):
    add_user("stu-9", Role.STUDENT, name="Nia Nine", email="nia@example.edu")
    event_id = make_event()
    svc = container.registration_service
    svc.register(caller_id="stu-1", event_id=event_id)
    svc.register(caller_id="stu-9", event_id=event_id)

    rows = svc.list_event_registrations(caller_id="org-1", event_id=event_id)
    assert {r.student_name for r in rows} == {"Sam Student", "Nia Nine"}

    mine = svc.list_my_registrations(caller_id="stu-9")
    assert [r.event_name for r in mine] == ["Robotics Workshop"]

    exported = list(csv.DictReader(io.StringIO(svc.export_attendance_csv(caller_id="org-1", event_id=event_id))))
    assert {r["student_email"] for r in exported} == {"stu-1@example.edu", "nia@example.edu"}
    assert all(r["status"] == "pending" for r in exported)

    with pytest.raises(AuthorizationError):
        svc.export_attendance_csv(caller_id="org-2", event_id=event_id)
