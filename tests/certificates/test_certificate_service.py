from __future__ import annotations

import dataclasses

import pytest

from eventide.core.exceptions import AuthorizationError, NotFoundError, ValidationError

TEMPLATE = "<h1>Certificate</h1><p>Awarded to {{studentName}}</p>"


@pytest.fixture
def attended(container, people, make_event):
    event_id = make_event()
    reg = container.registration_service.register(caller_id="stu-1", event_id=event_id)
    container.checkin_service.check_in(caller_id="org-1", event_id=event_id, code=reg.qr_code_data)
    return event_id, reg


def test_save_and_get_template(container, attended):
    event_id, _ = attended
    saved = container.certificate_service.save_template(caller_id="org-1", event_id=event_id, template_html=TEMPLATE)

    assert saved.placeholder_name == "{{studentName}}"
    assert saved.uploaded_by == "org-1"
    assert container.certificate_service.get_template(caller_id="coadmin-1", event_id=event_id).template_html == TEMPLATE


def test_template_management_is_for_event_managers(container, attended):
    event_id, _ = attended
    with pytest.raises(AuthorizationError):
        container.certificate_service.save_template(caller_id="org-2", event_id=event_id, template_html=TEMPLATE)
    with pytest.raises(AuthorizationError):
        container.certificate_service.get_template(caller_id="stu-1", event_id=event_id)


def test_template_must_contain_placeholder(container, attended):
    event_id, _ = attended
    with pytest.raises(ValidationError):
        container.certificate_service.save_template(caller_id="org-1", event_id=event_id, template_html="<p>hi</p>")
    with pytest.raises(ValidationError):
        container.certificate_service.save_template(caller_id="org-1", event_id=event_id, template_html="  ")


def test_issue_certificate_escapes_name(container, attended, db, storage):
    event_id, reg = attended
    db.users["stu-1"] = dataclasses.replace(db.users["stu-1"], name="<Sam & Co>")
    container.certificate_service.save_template(caller_id="org-1", event_id=event_id, template_html=TEMPLATE)

    issued = container.certificate_service.issue_certificate(caller_id="stu-1", registration_id=reg.registration_id)

    assert "&lt;Sam &amp; Co&gt;" in issued.html
    assert storage.files[issued.certificate_url] == issued.html.encode("utf-8")
    assert container.registration_service.get_registration(reg.registration_id).certificate_url == issued.certificate_url


def test_issue_requires_attendance_and_template(container, people, make_event):
    event_id = make_event()
    reg = container.registration_service.register(caller_id="stu-1", event_id=event_id)
    svc = container.certificate_service

    with pytest.raises(ValidationError):
        svc.issue_certificate(caller_id="stu-1", registration_id=reg.registration_id)

    container.checkin_service.check_in(caller_id="org-1", event_id=event_id, code=reg.qr_code_data)
    with pytest.raises(NotFoundError):
        svc.issue_certificate(caller_id="stu-1", registration_id=reg.registration_id)


def test_other_students_cannot_issue(container, attended):
    event_id, reg = attended
    container.certificate_service.save_template(caller_id="org-1", event_id=event_id, template_html=TEMPLATE)

    with pytest.raises(AuthorizationError):
        container.certificate_service.issue_certificate(caller_id="stu-2", registration_id=reg.registration_id)


def test_issue_requires_student_name(container, attended, db):
    event_id, reg = attended
    db.users["stu-1"] = dataclasses.replace(db.users["stu-1"], name=None)
    container.certificate_service.save_template(caller_id="org-1", event_id=event_id, template_html=TEMPLATE)

    with pytest.raises(ValidationError):
        container.certificate_service.issue_certificate(caller_id="org-1", registration_id=reg.registration_id)
