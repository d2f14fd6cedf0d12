import httpx
import structlog

from ..domain.ports import Platform, PlatformPublisher, PostContent, PublishResult
from .errors import handle_provider_error

logger = structlog.get_logger()


class GoogleBusinessPublisher(PlatformPublisher):
    """Creates a local post on a Google Business Profile location."""

    def __init__(
        self,
        account_id: str,
        location_id: str,
        base_url: str = "https://mybusiness.googleapis.com/v4",
        fallback_url: str = "https://example.com",
        timeout: float = 30.0,
    ) -> None:
        self._account_id = account_id
        self._location_id = location_id
        self._base_url = base_url.rstrip("/")
        self._fallback_url = fallback_url
        self._timeout = timeout

    @property
    def platform(self) -> Platform:
        return Platform.GBP

    @property
    def posts_url(self) -> str:
        return f"{self._base_url}/accounts/{self._account_id}/locations/{self._location_id}/posts"

    async def publish(
        self,
        access_token: str,
        content: PostContent,
        media_urls: list[str],
        content_item_id: str,
    ) -> PublishResult:
        local_post = {
            "summary": content.title or content.body,
            "callToAction": {
                "actionType": "LEARN_MORE",
                "url": media_urls[0] if media_urls else self._fallback_url,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self.posts_url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Content-Type": "application/json",
                    },
                    json=local_post,
                )
                response.raise_for_status()
                post_name = response.json().get("name")

            if not post_name:
                return PublishResult.failed("Google Business did not return a post name", status_code=400)

            logger.info("Google Business post created", post_name=post_name, content_item_id=content_item_id)
            return PublishResult.published(post_name, status_code=response.status_code)

        except Exception as e:
            return handle_provider_error(e, "Google Business")
