import random
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from ..domain.ports import (
    EngagementMetrics,
    MediaProcessor,
    MetricsRecorder,
    PlatformPublisher,
    PostContent,
    PostMetricsSample,
    ProcessedImage,
    PublishResult,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class PostCreated:
    """Provider accepted the post."""

    post_id: str
    url: str | None = None


@dataclass(frozen=True)
class PostFailed:
    """Provider answered but reported a failure."""

    error: str


ProviderResult = PostCreated | PostFailed


def simulated_engagement() -> EngagementMetrics:
    """Plausible engagement numbers for demo environments without webhooks."""
    return EngagementMetrics(
        impressions=random.randint(100, 1100),
        clicks=random.randint(5, 55),
        reactions=random.randint(10, 110),
        comments=random.randint(2, 22),
        shares=random.randint(1, 16),
        ctr=random.uniform(0.02, 0.12),
    )


class MediaPostPublisher(PlatformPublisher):
    """
    Shared plumbing for publishers that upload media and record metrics
    (Facebook, Instagram, LinkedIn).
    """

    def __init__(
        self,
        media: MediaProcessor,
        metrics: MetricsRecorder,
        simulate_metrics: bool = False,
    ) -> None:
        self._media = media
        self._metrics = metrics
        self._simulate_metrics = simulate_metrics

    async def _prepare_image(self, url: str) -> ProcessedImage:
        data = await self._media.fetch(url)
        return await self._media.process_image(data, self.platform.token_key)

    async def _complete(
        self,
        outcome: ProviderResult,
        content_item_id: str,
        content: PostContent,
    ) -> PublishResult:
        match outcome:
            case PostCreated(post_id=post_id):
                logger.info("Post published", platform=self.platform.value, post_id=post_id)
                await self._record_metrics(content_item_id, post_id, content)
                return PublishResult.published(post_id)
            case PostFailed(error=error):
                logger.error("Provider rejected post", platform=self.platform.value, error=error)
                return PublishResult.failed(error, status_code=400)

    async def _record_metrics(self, content_item_id: str, post_id: str, content: PostContent) -> None:
        metrics = simulated_engagement() if self._simulate_metrics else EngagementMetrics()
        sample = PostMetricsSample(
            content_item_id=content_item_id,
            platform=self.platform.value,
            template_version_id=content.template_version_id,
            metrics=metrics,
            posted_at=datetime.now(UTC),
        )
        try:
            await self._metrics.record_post_metrics(sample)
            logger.info(
                "Recorded post metrics",
                platform=self.platform.value,
                post_id=post_id,
                simulated=self._simulate_metrics,
            )
        except Exception as e:
            logger.error("Failed to record post metrics", post_id=post_id, error=str(e))
