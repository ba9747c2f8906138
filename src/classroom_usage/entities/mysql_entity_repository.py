from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import EntityKind
from ..core.exceptions import ConflictError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    from_json,
    to_db_datetime,
    to_json,
)
from .model import VersionedEntity
from .repository import VersionedRepository

_COLUMNS = "entity_id, kind, version, payload, created_at, updated_at"


class MySQLVersionedRepository(VersionedRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_entity(r: dict) -> VersionedEntity:
        return VersionedEntity(
            entity_id=str(r["entity_id"]),
            kind=EntityKind(r["kind"]),
            version=int(r["version"]),
            payload=from_json(r["payload"]) or {},
            created_at=from_db_datetime(r.get("created_at")),
            updated_at=from_db_datetime(r.get("updated_at")),
        )

    def insert(self, entity: VersionedEntity) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO versioned_entities(entity_id, kind, version, payload, created_at, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    entity.entity_id,
                    entity.kind.value,
                    int(entity.version),
                    to_json(dict(entity.payload)),
                    to_db_datetime(entity.created_at),
                    to_db_datetime(entity.updated_at),
                ),
            )

    def get(self, *, kind: EntityKind, entity_id: str) -> Optional[VersionedEntity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM versioned_entities WHERE entity_id=%s AND kind=%s",
                (entity_id, kind.value),
            )
            r = fetchone(cur)
            return self._to_entity(r) if r else None

    def list_by_kind(self, *, kind: EntityKind, limit: int) -> Sequence[VersionedEntity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM versioned_entities
                WHERE kind=%s
                ORDER BY created_at ASC
                LIMIT %s
                """,
                (kind.value, int(limit)),
            )
            return [self._to_entity(r) for r in fetchall(cur)]

    @staticmethod
    def _raise_missing_or_conflict(cur, kind: EntityKind, entity_id: str) -> None:
        # Read-only lookup after a zero-row conditional write.
        cur.execute(
            "SELECT version FROM versioned_entities WHERE entity_id=%s AND kind=%s",
            (entity_id, kind.value),
        )
        if not fetchone(cur):
            raise NotFoundError(kind.label, entity_id)
        raise ConflictError(kind.label, entity_id)

    def compare_and_update(
        self,
        *,
        kind: EntityKind,
        entity_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        now: datetime,
    ) -> VersionedEntity:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE versioned_entities
                SET payload=JSON_MERGE_PATCH(payload, %s), version=version + 1, updated_at=%s
                WHERE entity_id=%s AND kind=%s AND version=%s
                """,
                (to_json(dict(changes)), to_db_datetime(now), entity_id, kind.value, int(expected_version)),
            )
            if cur.rowcount == 0:
                self._raise_missing_or_conflict(cur, kind, entity_id)

            # Same transaction: the row is still locked by our UPDATE.
            cur.execute(
                f"SELECT {_COLUMNS} FROM versioned_entities WHERE entity_id=%s",
                (entity_id,),
            )
            return self._to_entity(fetchone(cur))

    def compare_and_delete(self, *, kind: EntityKind, entity_id: str, expected_version: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM versioned_entities WHERE entity_id=%s AND kind=%s AND version=%s",
                (entity_id, kind.value, int(expected_version)),
            )
            if cur.rowcount == 0:
                self._raise_missing_or_conflict(cur, kind, entity_id)
