"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CALLER_HEADER = "X-User-Id"
DEFAULT_CERTIFICATE_PLACEHOLDER = "{{studentName}}"
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 0.05
DEFAULT_LIST_LIMIT = 500

QR_NONCE_BYTES = 9
QR_SIGNATURE_CHARS = 16

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp"})
BROCHURE_EXTENSIONS = frozenset({"pdf"})
