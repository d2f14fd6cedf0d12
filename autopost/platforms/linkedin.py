import structlog

from ..domain.ports import MediaProcessor, MetricsRecorder, Platform, PostContent, PublishResult
from .base import MediaPostPublisher
from .errors import handle_provider_error
from .linkedin_client import LinkedInClient

logger = structlog.get_logger()


class LinkedInPublisher(MediaPostPublisher):
    """Publishes to the first LinkedIn Company Page the member administers."""

    def __init__(
        self,
        client: LinkedInClient,
        media: MediaProcessor,
        metrics: MetricsRecorder,
        simulate_metrics: bool = False,
    ) -> None:
        super().__init__(media, metrics, simulate_metrics)
        self._client = client

    @property
    def platform(self) -> Platform:
        return Platform.LINKEDIN

    async def publish(
        self,
        access_token: str,
        content: PostContent,
        media_urls: list[str],
        content_item_id: str,
    ) -> PublishResult:
        try:
            companies = await self._client.get_user_companies(access_token)
            if not companies:
                return PublishResult.failed("No LinkedIn companies found for this account")

            company = companies[0]
            logger.debug("Publishing to LinkedIn company", company_id=company.id, media_count=len(media_urls))

            if media_urls:
                image = await self._prepare_image(media_urls[0])
                outcome = await self._client.publish_image_post(
                    company.id,
                    access_token,
                    image.buffer,
                    content.body,
                )
            else:
                outcome = await self._client.publish_company_post(company.id, access_token, content.body)

            return await self._complete(outcome, content_item_id, content)

        except Exception as e:
            return handle_provider_error(e, "LinkedIn")
