"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ARCHIVE_TIMEZONE = "UTC"
DEFAULT_ARCHIVE_HOUR = 0
DEFAULT_ARCHIVE_MINUTE = 0
DEFAULT_ARCHIVE_ACTOR = "system:archival"
DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 1000

# Fields a caller may never set through a partial payload.
PROTECTED_FIELDS = frozenset(
    {
        "id",
        "_id",
        "kind",
        "version",
        "__v",
        "created_at",
        "updated_at",
        "createdAt",
        "updatedAt",
        "password_hash",
        "password_reset_token",
        "password_reset_expires",
        "verification_code",
        "verification_code_expires",
    }
)

CONFLICT_CODE = "VERSION_CONFLICT"
TIMEIN_LABEL = "TimeIn Record"
