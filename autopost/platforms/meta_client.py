"""
Meta Graph API client for Facebook Pages and Instagram business accounts.

Every method opens its own AsyncClient. HTTP errors are raised
(httpx.HTTPStatusError / httpx.RequestError) so the calling publisher can
normalize them; a 2xx answer without the expected id is returned as
PostFailed.
"""

import base64
from dataclasses import dataclass

import httpx
import structlog

from .base import PostCreated, PostFailed, ProviderResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class MetaPage:
    id: str
    name: str
    access_token: str
    category: str | None = None


@dataclass(frozen=True)
class InstagramAccount:
    id: str
    username: str | None = None
    account_type: str | None = None
    followers_count: int | None = None


class MetaClient:
    """Facebook Graph API primitives used by the Facebook and Instagram publishers."""

    def __init__(self, base_url: str = "https://graph.facebook.com/v18.0", timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def get_user_pages(self, access_token: str) -> list[MetaPage]:
        """Pages the user token can act as, each with its own page token."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                f"{self._base_url}/me/accounts",
                params={
                    "access_token": access_token,
                    "fields": "id,name,category,access_token",
                },
            )
            response.raise_for_status()
            data = response.json()

        return [
            MetaPage(
                id=page["id"],
                name=page.get("name", ""),
                access_token=page.get("access_token", ""),
                category=page.get("category"),
            )
            for page in data.get("data", [])
        ]

    async def get_instagram_accounts(self, page_access_token: str, page_id: str) -> list[InstagramAccount]:
        """Instagram business accounts connected to a page."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                f"{self._base_url}/{page_id}/instagram_accounts",
                params={
                    "access_token": page_access_token,
                    "fields": "id,username,account_type,followers_count",
                },
            )
            response.raise_for_status()
            data = response.json()

        return [
            InstagramAccount(
                id=account["id"],
                username=account.get("username"),
                account_type=account.get("account_type"),
                followers_count=account.get("followers_count"),
            )
            for account in data.get("data", [])
        ]

    # Facebook

    async def publish_facebook_post(
        self,
        page_id: str,
        page_access_token: str,
        message: str,
        link: str | None = None,
    ) -> ProviderResult:
        payload = {
            "message": message,
            "access_token": page_access_token,
        }
        if link:
            payload["link"] = link

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(f"{self._base_url}/{page_id}/feed", data=payload)
            response.raise_for_status()
            post_id = response.json().get("id")

        if not post_id:
            return PostFailed("Facebook did not return a post id")
        return PostCreated(post_id=post_id, url=f"https://facebook.com/posts/{post_id}")

    async def upload_facebook_photo(
        self,
        page_id: str,
        page_access_token: str,
        image: bytes,
        caption: str | None = None,
    ) -> ProviderResult:
        """Multipart upload of image bytes to the page's photos edge."""
        form = {"access_token": page_access_token}
        if caption:
            form["message"] = caption

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                f"{self._base_url}/{page_id}/photos",
                data=form,
                files={"source": ("image.jpg", image, "image/jpeg")},
            )
            response.raise_for_status()
            data = response.json()

        post_id = data.get("post_id") or data.get("id")
        if not post_id:
            return PostFailed("Facebook did not return a photo id")
        return PostCreated(post_id=post_id, url=f"https://facebook.com/photos/{post_id}")

    # Instagram

    async def upload_instagram_photo(
        self,
        instagram_account_id: str,
        page_access_token: str,
        image: bytes,
        caption: str,
    ) -> ProviderResult:
        image_url = "data:image/jpeg;base64," + base64.b64encode(image).decode("ascii")
        return await self._create_and_publish(
            instagram_account_id,
            page_access_token,
            {"image_url": image_url, "caption": caption},
            url_prefix="https://instagram.com/p/",
        )

    async def publish_instagram_story(
        self,
        instagram_account_id: str,
        page_access_token: str,
        media_url: str,
        is_video: bool = False,
        background_color: str | None = None,
    ) -> ProviderResult:
        container = {"media_type": "STORIES"}
        container["video_url" if is_video else "image_url"] = media_url
        if background_color:
            container["background_color"] = background_color
        return await self._create_and_publish(
            instagram_account_id,
            page_access_token,
            container,
            url_prefix=f"https://instagram.com/stories/{instagram_account_id}/",
        )

    async def publish_instagram_reel(
        self,
        instagram_account_id: str,
        page_access_token: str,
        video_url: str,
        caption: str,
        audio_name: str | None = None,
    ) -> ProviderResult:
        container = {"media_type": "REELS", "video_url": video_url, "caption": caption}
        if audio_name:
            container["audio_name"] = audio_name
        return await self._create_and_publish(
            instagram_account_id,
            page_access_token,
            container,
            url_prefix="https://instagram.com/reel/",
        )

    async def publish_instagram_igtv(
        self,
        instagram_account_id: str,
        page_access_token: str,
        video_url: str,
        caption: str,
        title: str | None = None,
        description: str | None = None,
    ) -> ProviderResult:
        container = {"media_type": "VIDEO", "video_url": video_url, "caption": caption}
        if title:
            container["title"] = title
        if description:
            container["description"] = description
        return await self._create_and_publish(
            instagram_account_id,
            page_access_token,
            container,
            url_prefix="https://instagram.com/tv/",
        )

    async def publish_instagram_carousel(
        self,
        instagram_account_id: str,
        page_access_token: str,
        image_urls: list[str],
        caption: str,
    ) -> ProviderResult:
        """
        One child container per image, then a CAROUSEL container, then publish.

        Children are created one request at a time to keep within the
        account's rate limit.
        """
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            children: list[str] = []
            for image_url in image_urls:
                child_id = await self._create_container(
                    client,
                    instagram_account_id,
                    page_access_token,
                    {"image_url": image_url, "is_carousel_item": "true"},
                )
                if not child_id:
                    return PostFailed("Instagram did not return a carousel item id")
                children.append(child_id)

            creation_id = await self._create_container(
                client,
                instagram_account_id,
                page_access_token,
                {"media_type": "CAROUSEL", "children": ",".join(children), "caption": caption},
            )
            if not creation_id:
                return PostFailed("Instagram did not return a media container id")

            post_id = await self._publish_container(client, instagram_account_id, page_access_token, creation_id)

        if not post_id:
            return PostFailed("Instagram did not return a media id")
        logger.info("Instagram carousel published", items=len(children), post_id=post_id)
        return PostCreated(post_id=post_id, url=f"https://instagram.com/p/{post_id}")

    async def _create_and_publish(
        self,
        instagram_account_id: str,
        page_access_token: str,
        container: dict[str, str],
        url_prefix: str,
    ) -> ProviderResult:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            # Step 1: Create media container
            creation_id = await self._create_container(client, instagram_account_id, page_access_token, container)
            if not creation_id:
                return PostFailed("Instagram did not return a media container id")

            # Step 2: Publish the container
            post_id = await self._publish_container(client, instagram_account_id, page_access_token, creation_id)

        if not post_id:
            return PostFailed("Instagram did not return a media id")
        return PostCreated(post_id=post_id, url=f"{url_prefix}{post_id}")

    async def _create_container(
        self,
        client: httpx.AsyncClient,
        instagram_account_id: str,
        page_access_token: str,
        container: dict[str, str],
    ) -> str | None:
        response = await client.post(
            f"{self._base_url}/{instagram_account_id}/media",
            data={**container, "access_token": page_access_token},
        )
        response.raise_for_status()
        return response.json().get("id")

    async def _publish_container(
        self,
        client: httpx.AsyncClient,
        instagram_account_id: str,
        page_access_token: str,
        creation_id: str,
    ) -> str | None:
        response = await client.post(
            f"{self._base_url}/{instagram_account_id}/media_publish",
            data={"creation_id": creation_id, "access_token": page_access_token},
        )
        response.raise_for_status()
        return response.json().get("id")
