import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.ports import MetricsRecorder, PostMetricsSample
from .session import session_scope

logger = structlog.get_logger()


class SqlAlchemyMetricsRecorder(MetricsRecorder):
    """Writes post metrics samples to the post_metrics table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record_post_metrics(self, sample: PostMetricsSample) -> None:
        metrics = sample.metrics
        async with session_scope(self._session_factory) as session:
            await session.execute(
                text("""
                    INSERT INTO post_metrics (
                        content_item_id, platform, template_version_id,
                        impressions, clicks, reactions, comments, shares, ctr, posted_at
                    )
                    VALUES (
                        :content_item_id, :platform, :template_version_id,
                        :impressions, :clicks, :reactions, :comments, :shares, :ctr, :posted_at
                    )
                """),
                {
                    "content_item_id": sample.content_item_id,
                    "platform": sample.platform,
                    "template_version_id": sample.template_version_id,
                    "impressions": metrics.impressions,
                    "clicks": metrics.clicks,
                    "reactions": metrics.reactions,
                    "comments": metrics.comments,
                    "shares": metrics.shares,
                    "ctr": metrics.ctr,
                    "posted_at": sample.posted_at,
                },
            )
            await session.commit()

        logger.debug(
            "Post metrics stored",
            content_item_id=sample.content_item_id,
            platform=sample.platform,
        )
