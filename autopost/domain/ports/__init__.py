from .content_store import (
    AutopostSettings,
    ContentItem,
    ContentStore,
    ContentVersion,
    Schedule,
    ScheduleOutcome,
)
from .media_processor import MediaProcessor, ProcessedImage
from .metrics_recorder import EngagementMetrics, MetricsRecorder, PostMetricsSample
from .platform_publisher import (
    Platform,
    PlatformPublisher,
    PostContent,
    PublishRequest,
    PublishResult,
)
from .token_provider import AccessToken, TokenProvider

__all__ = [
    "AccessToken",
    "AutopostSettings",
    "ContentItem",
    "ContentStore",
    "ContentVersion",
    "EngagementMetrics",
    "MediaProcessor",
    "MetricsRecorder",
    "Platform",
    "PlatformPublisher",
    "PostContent",
    "PostMetricsSample",
    "ProcessedImage",
    "PublishRequest",
    "PublishResult",
    "Schedule",
    "ScheduleOutcome",
    "TokenProvider",
]
