from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

from werkzeug.utils import secure_filename

from ..core.exceptions import TransientError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Upload:
    """A file received from a client, fully read into memory."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def extension(self) -> str:
        name = self.filename or ""
        return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def require_extension(upload: Upload, allowed: Iterable[str], field_name: str) -> None:
    allowed = sorted(allowed)
    if not upload.content:
        raise ValidationError(f"{field_name} is empty")
    if upload.extension not in allowed:
        raise ValidationError(f"{field_name} must be one of: {', '.join(allowed)}")


class AttachmentStorage(Protocol):
    def save(self, *, folder: str, filename: str, content: bytes) -> str:
        """Persist a file and return the URL it is served from."""

        raise NotImplementedError


class LocalFileStorage(AttachmentStorage):
    """Stores attachments below ``root``; URLs are ``url_prefix/<folder>/<name>``."""

    def __init__(self, root: str | Path, *, url_prefix: str = "/uploads"):
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    def save(self, *, folder: str, filename: str, content: bytes) -> str:
        safe_folder = "/".join(secure_filename(part) for part in folder.split("/") if part)
        safe_name = secure_filename(filename) or "file"
        # prefix keeps re-uploads of the same file name from overwriting each other
        stored_name = f"{uuid.uuid4().hex[:8]}-{safe_name}"

        target_dir = self._root / safe_folder
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / stored_name).write_bytes(content)
        except OSError as e:
            logger.warning("could not store %s/%s: %s", safe_folder, stored_name, e)
            raise TransientError("File storage is temporarily unavailable") from e

        return f"{self._url_prefix}/{safe_folder}/{stored_name}"
