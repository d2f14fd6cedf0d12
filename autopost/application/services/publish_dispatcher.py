"""
Application service that publishes one content item to one platform.

The dispatcher depends only on ports: the content store, the token
provider and a registry of platform publishers. It never raises to its
caller; every path ends in a PublishResult the worker can use to decide
whether and when to retry.
"""

import math
from collections.abc import Mapping

import structlog

from ...domain.ports import (
    ContentItem,
    ContentStore,
    ContentVersion,
    Platform,
    PlatformPublisher,
    PostContent,
    PublishRequest,
    PublishResult,
    ScheduleOutcome,
    TokenProvider,
)

logger = structlog.get_logger()


class PublishDispatcher:
    """
    Resolves idempotency, dry-run policy, token and content for a publish
    request, then routes it to the publisher registered for its platform.
    """

    def __init__(
        self,
        content_store: ContentStore,
        token_provider: TokenProvider,
        publishers: Mapping[Platform, PlatformPublisher],
        dry_run_default: bool = False,
    ) -> None:
        """
        Initialize with collaborators.

        Args:
            content_store: Content, schedules and autopost settings
            token_provider: Source of live platform access tokens
            publishers: One publisher per supported platform
            dry_run_default: Dry-run flag used when an organization has no override
        """
        self._content_store = content_store
        self._token_provider = token_provider
        self._publishers = dict(publishers)
        self._dry_run_default = dry_run_default

    async def publish(self, request: PublishRequest) -> PublishResult:
        """
        Publish a content item.

        Args:
            request: Content item, platform and optional schedule/organization

        Returns:
            PublishResult; never raises
        """
        log = logger.bind(
            content_item_id=request.content_item_id,
            platform=request.platform,
            schedule_id=request.schedule_id,
            organization_id=request.organization_id,
        )

        try:
            if request.schedule_id:
                existing = await self._find_published(request.content_item_id, request.schedule_id)
                if existing is not None:
                    log.info("Schedule already published, skipping", provider_id=existing)
                    return PublishResult.published(existing)

            is_dry_run = await self._resolve_dry_run(request.organization_id)

            token = await self._token_provider.get_valid_access_token(
                request.platform.lower(),
                organization_id=request.organization_id,
            )
            if token is None:
                log.warning("No valid token available")
                return PublishResult.failed("No valid token available")
            if token.dummy:
                log.info("Dummy token, forcing dry run")
                is_dry_run = True

            item = await self._content_store.get_content_item(request.content_item_id)
            version = await self._content_store.get_current_content_version(request.content_item_id)
            if item is None or version is None:
                log.warning("Content not found")
                return PublishResult.failed("Content not found")

            platform = Platform.parse(request.platform)
            publisher = self._publishers.get(platform) if platform else None
            if publisher is None:
                log.warning("Unsupported platform")
                return PublishResult.failed(f"Unsupported platform: {request.platform}")

            if is_dry_run:
                log.info("Dry run, provider call skipped")
                return PublishResult.published(f"dry_run_{platform.token_key}")

            content = request.adapted_content or _content_from_version(item, version)
            result = await publisher.publish(
                token.access_token,
                content,
                list(request.media_urls),
                request.content_item_id,
            )

            if result.success:
                log.info("Publish succeeded", provider_id=result.provider_id)
            else:
                log.warning(
                    "Publish failed",
                    error=result.error,
                    status_code=result.status_code,
                    retry_after=result.retry_after,
                )
            return result

        except Exception as e:
            log.error("Publish error", error=str(e), exc_info=True)
            return PublishResult.failed(str(e) or "Unknown error", retry_after=_retry_after_hint(e))

    async def record_publish_outcome(
        self,
        schedule_id: str,
        result: PublishResult,
        job_id: str | None = None,
        duration_ms: int | None = None,
    ) -> None:
        """Write the attempt's outcome to the schedule; failures are only logged."""
        status = "published" if result.success else "failed"
        outcome = ScheduleOutcome(
            provider_id=result.provider_id,
            error_message=result.error,
            job_id=job_id,
            duration_ms=duration_ms,
            status_code=result.status_code,
            retry_after=result.retry_after,
        )
        try:
            await self._content_store.update_schedule_status(schedule_id, status, outcome)
            logger.info("Recorded publish outcome", schedule_id=schedule_id, status=status)
        except Exception as e:
            logger.error(
                "Failed to record publish outcome",
                schedule_id=schedule_id,
                status=status,
                error=str(e),
            )

    async def _find_published(self, content_item_id: str, schedule_id: str) -> str | None:
        schedules = await self._content_store.get_content_schedules(content_item_id)
        schedule = next((s for s in schedules if s.id == schedule_id), None)
        if schedule is None or schedule.status != "published":
            return None
        if not schedule.provider_id:
            logger.warning("Published schedule has no provider id", schedule_id=schedule_id)
            return schedule.id
        return schedule.provider_id

    async def _resolve_dry_run(self, organization_id: str | None) -> bool:
        is_dry_run = self._dry_run_default
        if not organization_id:
            return is_dry_run

        try:
            settings = await self._content_store.get_autopost_settings(organization_id)
        except Exception as e:
            logger.warning(
                "Failed to load autopost settings, using default",
                organization_id=organization_id,
                error=str(e),
            )
            return is_dry_run

        if settings is None:
            return is_dry_run
        if isinstance(settings.dry_run, bool):
            is_dry_run = settings.dry_run
        # Disabled autopost never publishes for real
        if settings.autopost_enabled is False:
            is_dry_run = True
        return is_dry_run


def _retry_after_hint(error: Exception) -> int | None:
    value = getattr(error, "retry_after", None)
    if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
        return None
    return int(value)


def _content_from_version(item: ContentItem, version: ContentVersion) -> PostContent:
    metadata = dict(version.metadata or {})
    return PostContent(
        body=version.body or "",
        title=version.title or item.title,
        tags=list(metadata.get("tags") or []),
        metadata=metadata,
    )
