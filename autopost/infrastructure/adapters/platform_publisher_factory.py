"""
Factory for the platform publisher registry.

Builds one PlatformPublisher per supported platform, sharing the Meta
client between Facebook and Instagram.
"""

from ...config import Settings, settings
from ...domain.ports import MediaProcessor, MetricsRecorder, Platform, PlatformPublisher
from ...platforms import (
    FacebookPublisher,
    GoogleBusinessPublisher,
    InstagramPublisher,
    LinkedInClient,
    LinkedInPublisher,
    MetaClient,
    YouTubePublisher,
)


def build_platform_publishers(
    media: MediaProcessor,
    metrics: MetricsRecorder,
    config: Settings = settings,
) -> dict[Platform, PlatformPublisher]:
    """
    Create the publisher registry used by the dispatcher.

    Args:
        media: Media download and re-encoding adapter
        metrics: Post metrics sink
        config: Provider endpoints, timeouts and Business Profile ids

    Returns:
        Mapping with an entry for every Platform member
    """
    timeout = config.http_timeout_seconds
    simulate = config.simulate_post_metrics
    meta_client = MetaClient(base_url=config.meta_graph_api_url, timeout=timeout)
    linkedin_client = LinkedInClient(base_url=config.linkedin_api_url, timeout=timeout)

    publishers: dict[Platform, PlatformPublisher] = {}
    for platform in Platform:
        match platform:
            case Platform.FACEBOOK:
                publishers[platform] = FacebookPublisher(meta_client, media, metrics, simulate)
            case Platform.INSTAGRAM:
                publishers[platform] = InstagramPublisher(meta_client, media, metrics, simulate)
            case Platform.LINKEDIN:
                publishers[platform] = LinkedInPublisher(linkedin_client, media, metrics, simulate)
            case Platform.YOUTUBE:
                publishers[platform] = YouTubePublisher(base_url=config.youtube_api_url, timeout=timeout)
            case Platform.GBP:
                publishers[platform] = GoogleBusinessPublisher(
                    account_id=config.gbp_account_id,
                    location_id=config.gbp_location_id,
                    base_url=config.google_business_api_url,
                    fallback_url=config.gbp_fallback_url,
                    timeout=timeout,
                )
    return publishers
