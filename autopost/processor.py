"""
Publish job processor for the worker service.

Turns a publish.scheduled event into dispatcher calls, applies the retry
policy the dispatcher's results ask for, records each attempt's outcome
on the schedule and dead-letters jobs that finally fail.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog

from .application.services import PublishDispatcher
from .domain.ports import ContentStore, PostContent, PublishRequest, PublishResult
from .infrastructure.logging import Timer
from .infrastructure.metrics import PUBLISH_FAILURE, PUBLISH_LATENCY, PUBLISH_QUEUE_LAG, PUBLISH_SUCCESS

logger = structlog.get_logger()


def compute_backoff(
    attempt: int,
    retry_after: int | None = None,
    base_delay: float = 2.0,
    max_delay: float = 60.0,
) -> float:
    """
    Seconds to wait before the next attempt.

    A provider Retry-After hint wins; otherwise exponential backoff from
    base_delay, capped at max_delay. attempt is 1-based.
    """
    if retry_after is not None and retry_after > 0:
        return float(retry_after)
    return min(max_delay, base_delay * 2 ** (attempt - 1))


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Invalid scheduledAt, ignoring", scheduled_at=value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


@dataclass
class PublishJob:
    """A publish.scheduled event ready for processing."""

    job_id: str
    request: PublishRequest
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], job_id: str | None = None) -> "PublishJob":
        """
        Build a job from an event payload.

        Raises:
            KeyError: If contentItemId or platform is missing
        """
        adapted = payload.get("adaptedContent")
        request = PublishRequest(
            content_item_id=str(payload["contentItemId"]),
            platform=str(payload["platform"]),
            schedule_id=payload.get("scheduleId"),
            organization_id=payload.get("organizationId"),
            adapted_content=PostContent.from_mapping(adapted) if isinstance(adapted, dict) else None,
            media_urls=list(payload.get("mediaUrls") or []),
            scheduled_at=_parse_timestamp(payload.get("scheduledAt")),
        )
        return cls(job_id=job_id or str(uuid4()), request=request, payload=dict(payload))

    @property
    def queue_lag_seconds(self) -> float | None:
        if self.request.scheduled_at is None:
            return None
        return (datetime.now(UTC) - self.request.scheduled_at).total_seconds()


class PublishJobProcessor:
    """
    Runs publish jobs against the dispatcher with retries.

    Only retryable results (rate limits and provider 5xx) are retried.
    """

    def __init__(
        self,
        dispatcher: PublishDispatcher,
        content_store: ContentStore,
        max_attempts: int = 5,
        base_delay: float = 2.0,
        max_delay: float = 60.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._dispatcher = dispatcher
        self._content_store = content_store
        self._max_attempts = max(1, max_attempts)
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep

    async def process(self, job: PublishJob) -> PublishResult:
        request = job.request
        with structlog.contextvars.bound_contextvars(
            job_id=job.job_id,
            platform=request.platform,
            schedule_id=request.schedule_id,
        ):
            lag = job.queue_lag_seconds
            if lag is not None:
                PUBLISH_QUEUE_LAG.labels(platform=request.platform).set(lag)
            logger.info(
                "Processing publish job",
                content_item_id=request.content_item_id,
                queue_lag_seconds=round(lag, 3) if lag is not None else None,
            )

            attempt = 0
            while True:
                attempt += 1
                with Timer() as timer:
                    result = await self._dispatcher.publish(request)

                PUBLISH_LATENCY.labels(platform=request.platform).observe(timer.duration_ms / 1000)
                if result.success:
                    PUBLISH_SUCCESS.labels(platform=request.platform).inc()
                else:
                    PUBLISH_FAILURE.labels(platform=request.platform).inc()

                if request.schedule_id:
                    await self._dispatcher.record_publish_outcome(
                        request.schedule_id,
                        result,
                        job_id=job.job_id,
                        duration_ms=timer.duration_ms,
                    )

                if result.success:
                    logger.info(
                        "Publish job completed",
                        attempt=attempt,
                        provider_id=result.provider_id,
                        duration_ms=timer.duration_ms,
                    )
                    return result

                if not result.is_retryable or attempt >= self._max_attempts:
                    break

                delay = compute_backoff(attempt, result.retry_after, self._base_delay, self._max_delay)
                logger.warning(
                    "Publish attempt failed, retrying",
                    attempt=attempt,
                    delay_seconds=delay,
                    status_code=result.status_code,
                    error=result.error,
                )
                await self._sleep(delay)

            logger.error("Publish job failed", attempts=attempt, result=result.to_dict())
            await self._dead_letter(job, result)
            return result

    async def _dead_letter(self, job: PublishJob, result: PublishResult) -> None:
        try:
            await self._content_store.insert_publish_dlq(
                job.request.schedule_id,
                job.request.platform,
                result.error or "unknown_error",
                job.payload,
            )
        except Exception as e:
            logger.error("Failed to persist publish DLQ entry", error=str(e))
