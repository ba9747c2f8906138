"""Run one archival pass by hand (same steps as the midnight job).

Usage: python scripts/run_archive.py [YYYY-MM-DD] [--actor NAME]
Without a date, archives "yesterday" in ARCHIVE_TIMEZONE. The date must be
before today there.
"""

from __future__ import annotations

import argparse
import importlib
import sys
from datetime import time

from dotenv import load_dotenv

from classroom_usage.common.datetime_utils import parse_iso_date
from classroom_usage.common.logging_utils import configure_logging
from classroom_usage.config import get_settings_module
from classroom_usage.container import build_container
from classroom_usage.core.constants import (
    DEFAULT_ARCHIVE_ACTOR,
    DEFAULT_ARCHIVE_HOUR,
    DEFAULT_ARCHIVE_MINUTE,
    DEFAULT_ARCHIVE_TIMEZONE,
)
from classroom_usage.core.exceptions import ValidationError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("date", nargs="?", type=parse_iso_date, help="target day (YYYY-MM-DD)")
    parser.add_argument("--actor", default=None, help="recorded as generated_by")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=settings.DB_CONFIG,
        backend=getattr(settings, "STORAGE_BACKEND", "mysql"),
        timezone_name=getattr(settings, "ARCHIVE_TIMEZONE", DEFAULT_ARCHIVE_TIMEZONE),
        fire_at=time(
            int(getattr(settings, "ARCHIVE_HOUR", DEFAULT_ARCHIVE_HOUR)),
            int(getattr(settings, "ARCHIVE_MINUTE", DEFAULT_ARCHIVE_MINUTE)),
        ),
        actor=getattr(settings, "ARCHIVE_ACTOR", DEFAULT_ARCHIVE_ACTOR),
    )
    try:
        run = container.scheduler.run_now(target=args.date, actor=args.actor)
    except ValidationError as e:
        parser.error(str(e))

    for r in run.results:
        print(f"{r.kind.value:8} {r.outcome.value:10} {r.report_id or ''} {r.message or ''}".rstrip())
    return 0 if run.ok else 1


if __name__ == "__main__":
    sys.exit(main())
