"""
Instagram publisher.

Posts go to the first Instagram business account connected to the first
Facebook Page of the token. The content subtype comes from
``metadata["mediaType"]``; each subtype has a media precondition that is
checked before any Graph API request is made.
"""

import structlog

from ..domain.ports import MediaProcessor, MetricsRecorder, Platform, PostContent, PublishResult
from .base import MediaPostPublisher, ProviderResult
from .errors import handle_provider_error
from .meta_client import MetaClient

logger = structlog.get_logger()

_VIDEO_EXTENSIONS = (".mp4", ".mov")

# subtype -> (minimum media urls, error when unmet)
_REQUIREMENTS = {
    "photo": (1, "Instagram posts require media (image or video)"),
    "story": (1, "Instagram stories require media (image or video)"),
    "reel": (1, "Instagram reels require video"),
    "igtv": (1, "Instagram IGTV requires video"),
    "carousel": (2, "Instagram carousel requires at least 2 images"),
}


def resolve_media_type(content: PostContent) -> str:
    """Subtype from metadata; missing or unknown values publish as a photo."""
    media_type = str(content.metadata.get("mediaType") or "photo").lower()
    return media_type if media_type in _REQUIREMENTS else "photo"


def is_video_url(url: str) -> bool:
    path = url.split("?", 1)[0].lower()
    return path.endswith(_VIDEO_EXTENSIONS)


class InstagramPublisher(MediaPostPublisher):
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
        return Platform.INSTAGRAM

    async def publish(
        self,
        access_token: str,
        content: PostContent,
        media_urls: list[str],
        content_item_id: str,
    ) -> PublishResult:
        media_type = resolve_media_type(content)
        minimum, requirement = _REQUIREMENTS[media_type]
        if len(media_urls) < minimum:
            logger.warning(
                "Instagram media requirement not met",
                media_type=media_type,
                media_count=len(media_urls),
            )
            return PublishResult.failed(requirement)

        try:
            pages = await self._client.get_user_pages(access_token)
            if not pages:
                return PublishResult.failed("No Facebook pages found for this account")
            page = pages[0]

            accounts = await self._client.get_instagram_accounts(page.access_token, page.id)
            if not accounts:
                return PublishResult.failed("No Instagram business accounts found for this page")
            account = accounts[0]

            logger.debug(
                "Publishing to Instagram account",
                instagram_account_id=account.id,
                media_type=media_type,
            )
            outcome = await self._publish_media(media_type, account.id, page.access_token, content, media_urls)
            return await self._complete(outcome, content_item_id, content)

        except Exception as e:
            return handle_provider_error(e, "Instagram")

    async def _publish_media(
        self,
        media_type: str,
        account_id: str,
        page_token: str,
        content: PostContent,
        media_urls: list[str],
    ) -> ProviderResult:
        metadata = content.metadata
        match media_type:
            case "story":
                return await self._client.publish_instagram_story(
                    account_id,
                    page_token,
                    media_urls[0],
                    is_video=is_video_url(media_urls[0]),
                    background_color=metadata.get("storyBackground"),
                )
            case "reel":
                return await self._client.publish_instagram_reel(
                    account_id,
                    page_token,
                    media_urls[0],
                    content.body,
                    audio_name=metadata.get("reelMusic"),
                )
            case "igtv":
                return await self._client.publish_instagram_igtv(
                    account_id,
                    page_token,
                    media_urls[0],
                    content.body,
                    title=metadata.get("igtvTitle"),
                    description=metadata.get("igtvDescription"),
                )
            case "carousel":
                return await self._client.publish_instagram_carousel(
                    account_id,
                    page_token,
                    media_urls,
                    content.body,
                )
            case _:
                image = await self._prepare_image(media_urls[0])
                return await self._client.upload_instagram_photo(
                    account_id,
                    page_token,
                    image.buffer,
                    content.body,
                )
