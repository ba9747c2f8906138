import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "classroom_usage"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# "mysql" or "memory"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

ARCHIVE_ENABLED = bool(int(os.getenv("ARCHIVE_ENABLED", "1")))
ARCHIVE_TIMEZONE = os.getenv("ARCHIVE_TIMEZONE", "UTC")
ARCHIVE_HOUR = int(os.getenv("ARCHIVE_HOUR", "0"))
ARCHIVE_MINUTE = int(os.getenv("ARCHIVE_MINUTE", "0"))
ARCHIVE_ACTOR = os.getenv("ARCHIVE_ACTOR", "system:archival")
