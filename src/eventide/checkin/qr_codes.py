"""QR payloads for registrations.

Format: ``{event_id}|{student_id}|{nonce}|{signature}`` where the signature is a
truncated HMAC-SHA256 over the first three parts. The payload is stored on the
registration and matched exactly at check-in; the signature lets the scanner
reject forged or mistyped codes before touching the database.
"""

from __future__ import annotations

import hashlib
import hmac
import io
import secrets
from dataclasses import dataclass

import qrcode
from PIL import Image, UnidentifiedImageError

from ..core.constants import QR_NONCE_BYTES, QR_SIGNATURE_CHARS
from ..core.exceptions import InvalidCodeError, ValidationError


@dataclass(frozen=True)
class QRPayload:
    event_id: int
    student_id: str
    nonce: str


class QRCodeSigner:
    def __init__(self, secret: str):
        if not secret:
            raise ValueError("QR secret must not be empty")
        self._key = secret.encode("utf-8")

    def _sign(self, head: str) -> str:
        return hmac.new(self._key, head.encode("utf-8"), hashlib.sha256).hexdigest()[:QR_SIGNATURE_CHARS]

    def derive(self, *, event_id: int, student_id: str) -> str:
        """Fresh payload for a new registration of (event, student)."""

        head = f"{int(event_id)}|{student_id}|{secrets.token_urlsafe(QR_NONCE_BYTES)}"
        return f"{head}|{self._sign(head)}"

    def parse(self, payload: str) -> QRPayload:
        """Verify the signature and split the payload; raises InvalidCodeError."""

        value = (payload or "").strip()
        try:
            head, signature = value.rsplit("|", 1)
            event_part, rest = head.split("|", 1)
            student_id, nonce = rest.rsplit("|", 1)
            event_id = int(event_part)
        except ValueError:
            raise InvalidCodeError("Unrecognized QR code")

        if not student_id or not nonce or not hmac.compare_digest(signature, self._sign(head)):
            raise InvalidCodeError("Unrecognized QR code")
        return QRPayload(event_id=event_id, student_id=student_id, nonce=nonce)


def render_png(payload: str, *, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=box_size, border=border)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def decode_image(content: bytes) -> str:
    """Read the first QR code found in an uploaded photo/screenshot."""

    # imported here: pyzbar needs the zbar shared library at import time
    from pyzbar.pyzbar import decode as pyzbar_decode

    try:
        img = Image.open(io.BytesIO(content))
        img.load()
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Uploaded file is not a readable image")

    results = pyzbar_decode(img)
    if not results:
        raise InvalidCodeError("No QR code found in the image")
    return results[0].data.decode("utf-8", errors="replace")
