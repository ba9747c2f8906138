from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from werkzeug.security import generate_password_hash

from ..common.validators import (
    require_limit,
    require_non_empty,
    require_non_negative_int,
    require_version,
    sanitize_fields,
)
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import EntityKind
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import VersionedEntity
from .repository import VersionedRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.CLASSROOM: ("name", "location"),
    EntityKind.INSTRUCTOR: ("name",),
    EntityKind.USER: ("email",),
    EntityKind.USAGE: ("classroom_ref", "date"),
}


def parse_kind(value: Any) -> EntityKind:
    if isinstance(value, EntityKind):
        return value
    try:
        return EntityKind(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown entity kind: {value!r}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VersionedRecordService:
    """Create/read/update/delete with compare-and-swap on the version token.

    The service validates and sanitizes; the repository performs the actual
    conditional write, so there is never a read-then-write from here.
    """

    def __init__(
        self,
        repo: VersionedRepository,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._repo = repo
        self._clock = clock or _utcnow
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)

    def _validate(self, kind: EntityKind, fields: dict[str, Any], *, partial: bool) -> dict[str, Any]:
        for name in REQUIRED_FIELDS[kind]:
            if partial and name not in fields:
                continue
            fields[name] = require_non_empty(fields.get(name), name)

        if kind == EntityKind.CLASSROOM and fields.get("capacity") is not None:
            fields["capacity"] = require_non_negative_int(fields["capacity"], "capacity")

        if kind == EntityKind.USER and "password" in fields:
            password = fields.pop("password")
            if password:
                fields["password_hash"] = generate_password_hash(str(password))
        return fields

    def create(self, kind: EntityKind | str, payload: Mapping[str, Any] | None) -> VersionedEntity:
        kind = parse_kind(kind)
        fields = self._validate(kind, sanitize_fields(payload), partial=False)
        now = self._clock()
        entity = VersionedEntity(
            entity_id=self._new_id(),
            kind=kind,
            version=1,
            payload=fields,
            created_at=now,
            updated_at=now,
        )
        self._repo.insert(entity)
        logger.info("Created %s %s", kind.value, entity.entity_id)
        return entity

    def get(self, kind: EntityKind | str, entity_id: str) -> VersionedEntity:
        kind = parse_kind(kind)
        entity = self._repo.get(kind=kind, entity_id=str(entity_id))
        if not entity:
            raise NotFoundError(kind.label, str(entity_id))
        return entity

    def list(self, kind: EntityKind | str, *, limit: int | str | None = DEFAULT_LIST_LIMIT) -> Sequence[VersionedEntity]:
        return self._repo.list_by_kind(kind=parse_kind(kind), limit=require_limit(limit))

    def update(
        self,
        kind: EntityKind | str,
        entity_id: str,
        expected_version: Any,
        partial_payload: Mapping[str, Any] | None,
    ) -> VersionedEntity:
        kind = parse_kind(kind)
        version = require_version(expected_version)
        changes = self._validate(kind, sanitize_fields(partial_payload), partial=True)

        try:
            updated = self._repo.compare_and_update(
                kind=kind,
                entity_id=str(entity_id),
                expected_version=version,
                changes=changes,
                now=self._clock(),
            )
        except ConflictError:
            logger.warning("Version conflict updating %s %s (expected v%s)", kind.value, entity_id, version)
            raise

        logger.info("Updated %s %s to v%s", kind.value, entity_id, updated.version)
        return updated

    def delete(self, kind: EntityKind | str, entity_id: str, expected_version: Any) -> None:
        kind = parse_kind(kind)
        version = require_version(expected_version)
        try:
            self._repo.compare_and_delete(kind=kind, entity_id=str(entity_id), expected_version=version)
        except ConflictError:
            logger.warning("Version conflict deleting %s %s (expected v%s)", kind.value, entity_id, version)
            raise
        logger.info("Deleted %s %s", kind.value, entity_id)
