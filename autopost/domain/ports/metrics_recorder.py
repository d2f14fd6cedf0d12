"""Outbound port for post-publish analytics samples."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class EngagementMetrics:
    impressions: int = 0
    clicks: int = 0
    reactions: int = 0
    comments: int = 0
    shares: int = 0
    ctr: float = 0.0


@dataclass
class PostMetricsSample:
    content_item_id: str
    platform: str
    posted_at: datetime
    template_version_id: str | None = None
    metrics: EngagementMetrics = field(default_factory=EngagementMetrics)


class MetricsRecorder(ABC):
    @abstractmethod
    async def record_post_metrics(self, sample: PostMetricsSample) -> None:
        """Store a metrics sample for a published post."""
        ...
