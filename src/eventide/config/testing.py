import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "eventide_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

CALLER_HEADER = "X-User-Id"
QR_SECRET = "test-qr-secret"

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads-test")
UPLOAD_URL_PREFIX = "/uploads"

RETRY_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 0.0

AUTO_INIT_DB = False
AUTO_SEED_DB = False
