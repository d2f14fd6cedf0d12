import httpx
import structlog

from ..domain.ports import Platform, PlatformPublisher, PostContent, PublishResult
from .errors import handle_provider_error

logger = structlog.get_logger()


class YouTubePublisher(PlatformPublisher):
    """Creates a YouTube video resource from the content's title, body and tags."""

    def __init__(self, base_url: str = "https://www.googleapis.com/youtube/v3", timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def platform(self) -> Platform:
        return Platform.YOUTUBE

    async def publish(
        self,
        access_token: str,
        content: PostContent,
        media_urls: list[str],
        content_item_id: str,
    ) -> PublishResult:
        video = {
            "snippet": {
                "title": content.title,
                "description": content.body,
                "tags": content.tags,
            },
            "status": {"privacyStatus": "public"},
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/videos",
                    params={"part": "snippet,status"},
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Content-Type": "application/json",
                    },
                    json=video,
                )
                response.raise_for_status()
                video_id = response.json().get("id")

            if not video_id:
                return PublishResult.failed("YouTube did not return a video id", status_code=400)

            logger.info("YouTube video created", video_id=video_id, content_item_id=content_item_id)
            return PublishResult.published(video_id, status_code=response.status_code)

        except Exception as e:
            return handle_provider_error(e, "YouTube")
