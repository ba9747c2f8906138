"""Schema bootstrap for the MySQL backend.

``schema.sql`` is written as one statement per block ending in ``;`` at the end
of a line, with ``--`` line comments. Its own ``CREATE DATABASE``/``USE``
lines are ignored so the configured database name always wins.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

_DATABASE_LINE = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def split_statements(sql: str) -> Iterator[str]:
    buf: list[str] = []
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue
        buf.append(line)
        if stripped.endswith(";"):
            stmt = "\n".join(buf).strip().rstrip(";").strip()
            buf.clear()
            if stmt and not _DATABASE_LINE.match(stmt):
                yield stmt

    tail = "\n".join(buf).strip()
    if tail and not _DATABASE_LINE.match(tail):
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = mysql.connector.connect(**target.connect_kwargs(with_database=False))
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    statements = list(split_statements(Path(schema_path).read_text(encoding="utf-8")))

    conn = mysql.connector.connect(**DBConfig.from_dict(db_config).connect_kwargs())
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied %s schema statements from %s", len(statements), schema_path)


def list_tables(db_config: dict) -> list[str]:
    conn = mysql.connector.connect(**DBConfig.from_dict(db_config).connect_kwargs())
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
