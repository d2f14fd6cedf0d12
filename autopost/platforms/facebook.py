import structlog

from ..domain.ports import MediaProcessor, MetricsRecorder, Platform, PostContent, PublishResult
from .base import MediaPostPublisher
from .errors import handle_provider_error
from .meta_client import MetaClient

logger = structlog.get_logger()


class FacebookPublisher(MediaPostPublisher):
    """Publishes to the first Facebook Page the token can manage."""

    def __init__(
        self,
        client: MetaClient,
        media: MediaProcessor,
        metrics: MetricsRecorder,
        simulate_metrics: bool = False,
    ) -> None:
        super().__init__(media, metrics, simulate_metrics)
        self._client = client

    @property
    def platform(self) -> Platform:
        return Platform.FACEBOOK

    async def publish(
        self,
        access_token: str,
        content: PostContent,
        media_urls: list[str],
        content_item_id: str,
    ) -> PublishResult:
        try:
            pages = await self._client.get_user_pages(access_token)
            if not pages:
                return PublishResult.failed("No Facebook pages found for this account")

            page = pages[0]
            logger.debug("Publishing to Facebook page", page_id=page.id, media_count=len(media_urls))

            if media_urls:
                image = await self._prepare_image(media_urls[0])
                outcome = await self._client.upload_facebook_photo(
                    page.id,
                    page.access_token,
                    image.buffer,
                    caption=content.body,
                )
            else:
                outcome = await self._client.publish_facebook_post(
                    page.id,
                    page.access_token,
                    content.body,
                )

            return await self._complete(outcome, content_item_id, content)

        except Exception as e:
            return handle_provider_error(e, "Facebook")
