import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "eventide"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "eventide_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CALLER_HEADER = os.getenv("CALLER_HEADER", "X-User-Id")

QR_SECRET = os.getenv("QR_SECRET", "please-set-QR_SECRET")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/var/lib/eventide/uploads")
UPLOAD_URL_PREFIX = os.getenv("UPLOAD_URL_PREFIX", "/uploads")

RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_BACKOFF_SECONDS = float(os.getenv("RETRY_BACKOFF_SECONDS", "0.1"))

# Optional override for the schema file; the copy shipped in eventide/database is used otherwise
SCHEMA_PATH = os.getenv("SCHEMA_PATH") or None

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
