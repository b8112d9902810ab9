from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.constants import DEFAULT_CALLER_HEADER
from ..core.exceptions import DomainError
from ..storage.files import Upload

logger = logging.getLogger(__name__)


def caller_id() -> str:
    """uid forwarded by the identity-provider proxy (empty when absent)."""

    header = current_app.config.get("CALLER_HEADER", DEFAULT_CALLER_HEADER)
    return (request.headers.get(header) or "").strip()


def payload() -> dict[str, Any]:
    """JSON body, or the form fields of a multipart request."""

    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def upload(field: str) -> Optional[Upload]:
    file = request.files.get(field)
    if not file or not file.filename:
        return None
    return Upload(filename=file.filename, content=file.read(), content_type=file.mimetype)


def ok(data: Any = None, http_status: int = 200, **extra):
    """Success body; ``extra`` keys land next to ``data``."""

    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), http_status


def error(code: str, message: str, status: int):
    return jsonify({"success": False, "error": code, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.http_status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.path, e)
        return error(e.code, str(e), e.http_status)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error(e.name.lower().replace(" ", "_"), e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.path)
        return error("internal", "Internal server error", 500)
