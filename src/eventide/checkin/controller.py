from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import iso_or_none
from ..common.http import caller_id, ok, payload, upload
from ..container import Container
from ..core.constants import IMAGE_EXTENSIONS
from ..core.enums import CheckInOutcome
from ..core.exceptions import ValidationError
from ..storage.files import require_extension
from .model import CheckInResult

MESSAGES = {
    CheckInOutcome.CHECKED_IN: "Check-in recorded",
    CheckInOutcome.ALREADY_CHECKED_IN: "Already checked in",
}


def result_json(result: CheckInResult) -> dict:
    return {
        "outcome": result.outcome.value,
        "registration_id": result.registration_id,
        "student_id": result.student_id,
        "student_name": result.student_name,
        "checked_in_at": iso_or_none(result.checked_in_at),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<int:event_id>/check-in", methods=["POST"], endpoint="check_in")
    def check_in(event_id: int):
        image = upload("image") if request.files else None
        if image is not None:
            require_extension(image, IMAGE_EXTENSIONS, "Image")
            result = container.checkin_service.check_in_image(
                caller_id=caller_id(), event_id=event_id, image=image.content
            )
        else:
            code = str(payload().get("code") or "").strip()
            if not code:
                raise ValidationError("A QR code or an image is required")
            result = container.checkin_service.check_in(caller_id=caller_id(), event_id=event_id, code=code)

        return ok(result_json(result), message=MESSAGES[result.outcome])
