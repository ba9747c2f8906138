import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "classroom_usage"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

ARCHIVE_ENABLED = bool(int(os.getenv("ARCHIVE_ENABLED", "1")))
ARCHIVE_TIMEZONE = os.getenv("ARCHIVE_TIMEZONE", "UTC")
ARCHIVE_HOUR = int(os.getenv("ARCHIVE_HOUR", "0"))
ARCHIVE_MINUTE = int(os.getenv("ARCHIVE_MINUTE", "0"))
ARCHIVE_ACTOR = os.getenv("ARCHIVE_ACTOR", "system:archival")
