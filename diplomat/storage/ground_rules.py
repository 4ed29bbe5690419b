"""GroundRulesStore: aiosqlite persistence for ground-rules documents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from diplomat.errors import GroundRulesNotFoundError
from diplomat.mediator.prompt import DEFAULT_GROUND_RULES
from diplomat.models import GroundRules, utc_now
from diplomat.storage.schema import SqliteStore

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Our Communication Ground Rules"

_COLUMNS = "id, title, content, created_by, finalized, created_at, updated_at"


class GroundRulesStore(SqliteStore):
    """Persists the ground-rules documents participants agree on.

    Args:
        db_path: SQLite file; defaults to ``settings.database_path``.
        template: Text used for :meth:`create_from_template`.
    """

    def __init__(self, db_path: Path | None = None, template: str | None = None) -> None:
        super().__init__(db_path)
        self._template = template or DEFAULT_GROUND_RULES

    def template(self) -> str:
        return self._template

    async def create(self, title: str, content: str, created_by: str) -> GroundRules:
        created_at = utc_now()
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                INSERT INTO ground_rules (title, content, created_by, finalized, created_at)
                VALUES (?, ?, ?, 0, ?)
                """,
                (title, content, created_by, created_at),
            )
            await db.commit()
            rules_id = cursor.lastrowid
        finally:
            await db.close()
        logger.info("Created ground rules %d (%s) by %s", rules_id, title, created_by)
        return GroundRules(
            id=rules_id,
            title=title,
            content=content,
            created_by=created_by,
            created_at=created_at,
        )

    async def create_from_template(self, created_by: str = "TEMPLATE") -> GroundRules:
        return await self.create(DEFAULT_TITLE, self._template, created_by)

    async def get(self, rules_id: int) -> GroundRules:
        """Fetch a document by id. Raises GroundRulesNotFoundError if missing."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM ground_rules WHERE id = ?",  # noqa: S608
                (rules_id,),
            )
            row = await cursor.fetchone()
        finally:
            await db.close()
        if row is None:
            msg = f"Ground rules not found: {rules_id}"
            raise GroundRulesNotFoundError(msg)
        return GroundRules.from_row(row)

    async def list_all(self) -> list[GroundRules]:
        db = await self._connect()
        try:
            cursor = await db.execute(f"SELECT {_COLUMNS} FROM ground_rules ORDER BY id")  # noqa: S608
            rows = await cursor.fetchall()
            return [GroundRules.from_row(row) for row in rows]
        finally:
            await db.close()

    async def update(self, rules_id: int, content: str) -> GroundRules:
        await self._set(rules_id, "content = ?", (content,))
        return await self.get(rules_id)

    async def finalize(self, rules_id: int) -> GroundRules:
        """Mark the document as agreed by both participants."""
        await self._set(rules_id, "finalized = ?", (1,))
        return await self.get(rules_id)

    async def _set(self, rules_id: int, assignment: str, params: tuple) -> None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"UPDATE ground_rules SET {assignment}, updated_at = ? WHERE id = ?",  # noqa: S608
                (*params, utc_now(), rules_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                msg = f"Ground rules not found: {rules_id}"
                raise GroundRulesNotFoundError(msg)
        finally:
            await db.close()
