"""
SQLAlchemy implementation of the ContentStore port.

Queries are plain SQL through ``text()`` against the content, schedule,
autopost settings and publish DLQ tables.
"""

import json
import secrets
import time
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.ports import (
    AutopostSettings,
    ContentItem,
    ContentStore,
    ContentVersion,
    Schedule,
    ScheduleOutcome,
)
from .session import session_scope

logger = structlog.get_logger()


class SqlAlchemyContentStore(ContentStore):
    """
    SQLAlchemy implementation of ContentStore.

    Every call opens its own session from the factory. Write operations
    commit immediately; reads never do.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize with a session factory.

        Args:
            session_factory: Factory producing SQLAlchemy async sessions
        """
        self._session_factory = session_factory

    async def get_content_item(self, content_item_id: str) -> ContentItem | None:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                text("""
                    SELECT id, organization_id, title, status, current_version_id
                    FROM content_items WHERE id = :id
                """),
                {"id": content_item_id},
            )
            row = result.fetchone()

        if row:
            return ContentItem(
                id=str(row[0]),
                organization_id=row[1],
                title=row[2],
                status=row[3],
                current_version_id=row[4],
            )
        return None

    async def get_current_content_version(self, content_item_id: str) -> ContentVersion | None:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                text("""
                    SELECT cv.id, cv.body, cv.title, cv.metadata
                    FROM content_versions cv
                    JOIN content_items ci ON cv.id = ci.current_version_id
                    WHERE ci.id = :id
                """),
                {"id": content_item_id},
            )
            row = result.fetchone()

        if row:
            return ContentVersion(
                id=str(row[0]),
                body=row[1] or "",
                title=row[2],
                metadata=_as_dict(row[3]),
            )
        return None

    async def get_content_schedules(self, content_item_id: str) -> list[Schedule]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                text("""
                    SELECT id, content_item_id, platform, status, provider_id
                    FROM schedules
                    WHERE content_item_id = :content_item_id
                    ORDER BY scheduled_at ASC
                """),
                {"content_item_id": content_item_id},
            )
            rows = result.fetchall()

        return [
            Schedule(
                id=str(row[0]),
                content_item_id=str(row[1]),
                platform=row[2],
                status=row[3] or "pending",
                provider_id=row[4],
            )
            for row in rows
        ]

    async def update_schedule_status(
        self,
        schedule_id: str,
        status: str,
        outcome: ScheduleOutcome,
    ) -> None:
        async with session_scope(self._session_factory) as session:
            await session.execute(
                text("""
                    UPDATE schedules
                    SET status = :status,
                        provider_id = :provider_id,
                        error_message = :error_message,
                        job_id = :job_id,
                        duration_ms = :duration_ms,
                        status_code = :status_code,
                        retry_after_seconds = :retry_after,
                        updated_at = NOW()
                    WHERE id = :id
                """),
                {
                    "id": schedule_id,
                    "status": status,
                    "provider_id": outcome.provider_id,
                    "error_message": outcome.error_message,
                    "job_id": outcome.job_id,
                    "duration_ms": outcome.duration_ms,
                    "status_code": outcome.status_code,
                    "retry_after": outcome.retry_after,
                },
            )
            await session.commit()

        logger.info("Schedule status updated", schedule_id=schedule_id, status=status)

    async def get_autopost_settings(self, organization_id: str) -> AutopostSettings | None:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                text("""
                    SELECT organization_id, autopost_enabled, dry_run
                    FROM autopost_settings WHERE organization_id = :organization_id
                """),
                {"organization_id": organization_id},
            )
            row = result.fetchone()

        if row:
            return AutopostSettings(
                organization_id=str(row[0]),
                autopost_enabled=row[1],
                dry_run=row[2],
            )
        return None

    async def insert_publish_dlq(
        self,
        schedule_id: str | None,
        platform: str,
        error: str,
        payload: dict[str, Any],
    ) -> str:
        dlq_id = f"pdlq_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        async with session_scope(self._session_factory) as session:
            await session.execute(
                text("""
                    INSERT INTO publish_dlq (id, schedule_id, platform, error, payload, created_at)
                    VALUES (:id, :schedule_id, :platform, :error, :payload, NOW())
                """),
                {
                    "id": dlq_id,
                    "schedule_id": schedule_id,
                    "platform": platform,
                    "error": error,
                    "payload": json.dumps(payload or {}, default=str),
                },
            )
            await session.commit()

        logger.warning(
            "Publish job dead-lettered",
            dlq_id=dlq_id,
            schedule_id=schedule_id,
            platform=platform,
            error=error,
        )
        return dlq_id


def _as_dict(value: Any) -> dict[str, Any]:
    """JSON columns arrive as dicts from asyncpg, or as text from older rows."""
    if not value:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return dict(value) if isinstance(value, dict) else {}
