"""Entity resolution backends used by cross-reference resolvers."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

import psycopg  # type: ignore[import-not-found]
from psycopg import sql  # type: ignore[import-not-found]
from psycopg.rows import dict_row  # type: ignore[import-not-found]

from .config import IdentifierSettings, get_settings
from .errors import LookupFailureError
from .resolvers import ResolvedEntity

logger = logging.getLogger(__name__)


class PostgresEntityResolver:
    """Resolve entity references against the PostgreSQL entities table.

    A reference may be either the internal id or the standard id of the
    stored entity. One connection is opened per lookup; pooling and retries
    belong to the caller.
    """

    def __init__(self, dsn: str, *, schema: str = "graphid", table: str = "entities"):
        self.dsn = dsn
        self.table = sql.SQL("{}.{}").format(sql.Identifier(schema), sql.Identifier(table))

    @classmethod
    def from_settings(cls, settings: Optional[IdentifierSettings] = None) -> "PostgresEntityResolver":
        settings = settings or get_settings()
        if not settings.dsn:
            raise ValueError("GRAPHID_DSN must be set to resolve references against PostgreSQL")
        return cls(str(settings.dsn), schema=settings.db_schema, table=settings.entities_table)

    def _query(self) -> sql.Composed:
        return sql.SQL(
            """
            SELECT internal_id, standard_id, entity_type
            FROM {table}
            WHERE internal_id = %s OR standard_id = %s
            LIMIT 1
            """
        ).format(table=self.table)

    async def lookup_by_id(self, entity_id: str) -> Optional[ResolvedEntity]:
        try:
            conn = await psycopg.AsyncConnection.connect(self.dsn, row_factory=dict_row)
            async with conn:
                async with conn.cursor() as cur:
                    await cur.execute(self._query(), (entity_id, entity_id))
                    row = await cur.fetchone()
        except psycopg.Error as exc:
            logger.error("Entity lookup failed for %s: %s", entity_id, exc)
            raise LookupFailureError(entity_id, str(exc)) from exc

        if not row:
            return None
        return ResolvedEntity(
            id=str(row["internal_id"]),
            standard_id=row["standard_id"],
            entity_type=row.get("entity_type"),
        )


class InMemoryEntityResolver:
    """Dictionary-backed resolver for tests and offline tooling."""

    def __init__(self, entities: Optional[Mapping[str, str]] = None):
        self._entities: Dict[str, ResolvedEntity] = {}
        for entity_id, standard_id in (entities or {}).items():
            self.add(entity_id, standard_id)

    def add(self, entity_id: str, standard_id: str, entity_type: Optional[str] = None) -> ResolvedEntity:
        entity = ResolvedEntity(id=entity_id, standard_id=standard_id, entity_type=entity_type)
        self._entities[entity_id] = entity
        self._entities[standard_id] = entity
        return entity

    async def lookup_by_id(self, entity_id: str) -> Optional[ResolvedEntity]:
        return self._entities.get(entity_id)


__all__ = ["InMemoryEntityResolver", "PostgresEntityResolver"]
