"""
Outbound port for content, schedules and publish bookkeeping.

Implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ContentItem:
    id: str
    organization_id: str | None = None
    title: str | None = None
    status: str | None = None
    current_version_id: str | None = None


@dataclass
class ContentVersion:
    id: str
    body: str = ""
    title: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Schedule:
    id: str
    content_item_id: str
    platform: str | None = None
    status: str = "pending"
    provider_id: str | None = None


@dataclass
class AutopostSettings:
    """Per-organization publishing policy; None fields mean "not configured"."""

    organization_id: str
    autopost_enabled: bool | None = None
    dry_run: bool | None = None


@dataclass
class ScheduleOutcome:
    """Details written alongside a schedule status change."""

    provider_id: str | None = None
    error_message: str | None = None
    job_id: str | None = None
    duration_ms: int | None = None
    status_code: int | None = None
    retry_after: int | None = None


class ContentStore(ABC):
    """
    Outbound port for content persistence.

    Lookups return None when a record does not exist.
    """

    @abstractmethod
    async def get_content_item(self, content_item_id: str) -> ContentItem | None:
        ...

    @abstractmethod
    async def get_current_content_version(self, content_item_id: str) -> ContentVersion | None:
        ...

    @abstractmethod
    async def get_content_schedules(self, content_item_id: str) -> list[Schedule]:
        """Return all schedules of a content item, earliest first."""
        ...

    @abstractmethod
    async def update_schedule_status(
        self,
        schedule_id: str,
        status: str,
        outcome: ScheduleOutcome,
    ) -> None:
        """
        Persist the outcome of a publish attempt.

        Args:
            schedule_id: Schedule being updated
            status: New status (published, failed)
            outcome: Provider id, error and timing details
        """
        ...

    async def get_autopost_settings(self, organization_id: str) -> AutopostSettings | None:
        """Autopost policy of an organization; stores without one return None."""
        return None

    @abstractmethod
    async def insert_publish_dlq(
        self,
        schedule_id: str | None,
        platform: str,
        error: str,
        payload: dict[str, Any],
    ) -> str:
        """Record a publish job that failed permanently; returns the DLQ row id."""
        ...
