import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "classroom_usage_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

STORAGE_BACKEND = "memory"

AUTO_INIT_DB = False

# Tests drive the scheduler by hand.
ARCHIVE_ENABLED = False
ARCHIVE_TIMEZONE = "UTC"
ARCHIVE_HOUR = 0
ARCHIVE_MINUTE = 0
ARCHIVE_ACTOR = "system:archival"
