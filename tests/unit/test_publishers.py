from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from autopost.domain.ports import Platform, PostContent
from autopost.platforms import (
    FacebookPublisher,
    GoogleBusinessPublisher,
    InstagramAccount,
    InstagramPublisher,
    LinkedInClient,
    LinkedInCompany,
    LinkedInPublisher,
    MetaClient,
    MetaPage,
    PostCreated,
    PostFailed,
    YouTubePublisher,
)


def _rate_limited() -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://graph.facebook.com/v18.0/p1/feed")
    response = httpx.Response(429, headers={"retry-after": "7"}, request=request)
    return httpx.HTTPStatusError("Too Many Requests", request=request, response=response)


@pytest.fixture
def meta_client():
    client = AsyncMock(spec=MetaClient)
    client.get_user_pages.return_value = [MetaPage(id="p1", name="Acme", access_token="page-token")]
    client.get_instagram_accounts.return_value = [InstagramAccount(id="ig1", username="acme")]
    return client


@pytest.fixture
def content():
    return PostContent(body="Hello world", title="Launch", metadata={"templateId": "tpl_1"})


class TestFacebookPublisher:
    @pytest.fixture
    def publisher(self, meta_client, media, metrics):
        return FacebookPublisher(meta_client, media, metrics)

    @pytest.mark.asyncio
    async def test_text_post(self, publisher, meta_client, metrics, content) -> None:
        meta_client.publish_facebook_post.return_value = PostCreated(post_id="fb_123")

        result = await publisher.publish("user-token", content, [], "ci_1")

        assert result.success is True
        assert result.provider_id == "fb_123"
        assert result.status_code == 200
        meta_client.publish_facebook_post.assert_awaited_once_with("p1", "page-token", "Hello world")
        meta_client.upload_facebook_photo.assert_not_awaited()

        sample = metrics.record_post_metrics.await_args.args[0]
        assert sample.content_item_id == "ci_1"
        assert sample.platform == "FACEBOOK"
        assert sample.template_version_id == "tpl_1"
        assert sample.metrics.impressions == 0

    @pytest.mark.asyncio
    async def test_photo_post_uses_first_media_url(self, publisher, meta_client, media, content) -> None:
        meta_client.upload_facebook_photo.return_value = PostCreated(post_id="fb_photo")

        result = await publisher.publish(
            "user-token",
            content,
            ["https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"],
            "ci_1",
        )

        assert result.provider_id == "fb_photo"
        media.fetch.assert_awaited_once_with("https://cdn.example.com/a.jpg")
        media.process_image.assert_awaited_once_with(b"raw-image", "facebook")
        meta_client.upload_facebook_photo.assert_awaited_once_with(
            "p1",
            "page-token",
            b"processed-image",
            caption="Hello world",
        )

    @pytest.mark.asyncio
    async def test_no_pages(self, publisher, meta_client, content) -> None:
        meta_client.get_user_pages.return_value = []

        result = await publisher.publish("user-token", content, [], "ci_1")

        assert result.success is False
        assert result.error == "No Facebook pages found for this account"

    @pytest.mark.asyncio
    async def test_provider_reported_failure(self, publisher, meta_client, metrics, content) -> None:
        meta_client.publish_facebook_post.return_value = PostFailed("Facebook did not return a post id")

        result = await publisher.publish("user-token", content, [], "ci_1")

        assert result.success is False
        assert result.error == "Facebook did not return a post id"
        assert result.status_code == 400
        metrics.record_post_metrics.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_is_normalized(self, publisher, meta_client, content) -> None:
        meta_client.publish_facebook_post.side_effect = _rate_limited()

        result = await publisher.publish("user-token", content, [], "ci_1")

        assert result.success is False
        assert result.retry_after == 7
        assert result.status_code == 429

    @pytest.mark.asyncio
    async def test_metrics_failure_does_not_fail_publish(self, publisher, meta_client, metrics, content) -> None:
        meta_client.publish_facebook_post.return_value = PostCreated(post_id="fb_123")
        metrics.record_post_metrics.side_effect = RuntimeError("metrics table locked")

        result = await publisher.publish("user-token", content, [], "ci_1")

        assert result.success is True
        assert result.provider_id == "fb_123"

    @pytest.mark.asyncio
    async def test_simulated_metrics(self, meta_client, media, metrics, content) -> None:
        publisher = FacebookPublisher(meta_client, media, metrics, simulate_metrics=True)
        meta_client.publish_facebook_post.return_value = PostCreated(post_id="fb_123")

        await publisher.publish("user-token", content, [], "ci_1")

        sample = metrics.record_post_metrics.await_args.args[0]
        assert 100 <= sample.metrics.impressions <= 1100
        assert 0.02 <= sample.metrics.ctr <= 0.12


class TestInstagramPublisher:
    @pytest.fixture
    def publisher(self, meta_client, media, metrics):
        return InstagramPublisher(meta_client, media, metrics)

    def _content(self, media_type: str | None = None, **metadata) -> PostContent:
        if media_type:
            metadata["mediaType"] = media_type
        return PostContent(body="Caption", metadata=metadata)

    @pytest.mark.asyncio
    async def test_carousel_requires_two_images(self, publisher, meta_client, media) -> None:
        result = await publisher.publish("user-token", self._content("carousel"), ["https://cdn/1.jpg"], "ci_1")

        assert result.success is False
        assert result.error == "Instagram carousel requires at least 2 images"
        meta_client.get_user_pages.assert_not_awaited()
        meta_client.publish_instagram_carousel.assert_not_awaited()
        media.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("media_type", "error"),
        [
            (None, "Instagram posts require media (image or video)"),
            ("photo", "Instagram posts require media (image or video)"),
            ("story", "Instagram stories require media (image or video)"),
            ("reel", "Instagram reels require video"),
            ("igtv", "Instagram IGTV requires video"),
        ],
    )
    async def test_media_requirements(self, publisher, meta_client, media_type, error) -> None:
        result = await publisher.publish("user-token", self._content(media_type), [], "ci_1")

        assert result.error == error
        meta_client.get_user_pages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_photo_is_processed_and_uploaded(self, publisher, meta_client, media) -> None:
        meta_client.upload_instagram_photo.return_value = PostCreated(post_id="ig_media_1")

        result = await publisher.publish("user-token", self._content(), ["https://cdn/1.jpg"], "ci_1")

        assert result.provider_id == "ig_media_1"
        meta_client.get_instagram_accounts.assert_awaited_once_with("page-token", "p1")
        media.process_image.assert_awaited_once_with(b"raw-image", "instagram")
        meta_client.upload_instagram_photo.assert_awaited_once_with("ig1", "page-token", b"processed-image", "Caption")

    @pytest.mark.asyncio
    async def test_unknown_media_type_publishes_as_photo(self, publisher, meta_client) -> None:
        meta_client.upload_instagram_photo.return_value = PostCreated(post_id="ig_media_2")

        result = await publisher.publish("user-token", self._content("hologram"), ["https://cdn/1.jpg"], "ci_1")

        assert result.provider_id == "ig_media_2"

    @pytest.mark.asyncio
    async def test_story_detects_video(self, publisher, meta_client) -> None:
        meta_client.publish_instagram_story.return_value = PostCreated(post_id="story_1")

        await publisher.publish(
            "user-token",
            self._content("story", storyBackground="#ffffff"),
            ["https://cdn/clip.MP4?sig=1"],
            "ci_1",
        )

        meta_client.publish_instagram_story.assert_awaited_once_with(
            "ig1",
            "page-token",
            "https://cdn/clip.MP4?sig=1",
            is_video=True,
            background_color="#ffffff",
        )

    @pytest.mark.asyncio
    async def test_reel_passes_music(self, publisher, meta_client) -> None:
        meta_client.publish_instagram_reel.return_value = PostCreated(post_id="reel_1")

        await publisher.publish("user-token", self._content("reel", reelMusic="Track"), ["https://cdn/r.mp4"], "ci_1")

        meta_client.publish_instagram_reel.assert_awaited_once_with(
            "ig1", "page-token", "https://cdn/r.mp4", "Caption", audio_name="Track"
        )

    @pytest.mark.asyncio
    async def test_igtv_passes_title_and_description(self, publisher, meta_client) -> None:
        meta_client.publish_instagram_igtv.return_value = PostCreated(post_id="tv_1")

        await publisher.publish(
            "user-token",
            self._content("igtv", igtvTitle="Episode 1", igtvDescription="Pilot"),
            ["https://cdn/v.mp4"],
            "ci_1",
        )

        meta_client.publish_instagram_igtv.assert_awaited_once_with(
            "ig1", "page-token", "https://cdn/v.mp4", "Caption", title="Episode 1", description="Pilot"
        )

    @pytest.mark.asyncio
    async def test_carousel(self, publisher, meta_client) -> None:
        meta_client.publish_instagram_carousel.return_value = PostCreated(post_id="carousel_1")
        urls = ["https://cdn/1.jpg", "https://cdn/2.jpg"]

        result = await publisher.publish("user-token", self._content("carousel"), urls, "ci_1")

        assert result.provider_id == "carousel_1"
        meta_client.publish_instagram_carousel.assert_awaited_once_with("ig1", "page-token", urls, "Caption")

    @pytest.mark.asyncio
    async def test_no_business_account(self, publisher, meta_client) -> None:
        meta_client.get_instagram_accounts.return_value = []

        result = await publisher.publish("user-token", self._content(), ["https://cdn/1.jpg"], "ci_1")

        assert result.error == "No Instagram business accounts found for this page"

    @pytest.mark.asyncio
    async def test_token_expired(self, publisher, meta_client) -> None:
        request = httpx.Request("GET", "https://graph.facebook.com/v18.0/me/accounts")
        meta_client.get_user_pages.side_effect = httpx.HTTPStatusError(
            "Unauthorized",
            request=request,
            response=httpx.Response(401, request=request),
        )

        result = await publisher.publish("user-token", self._content(), ["https://cdn/1.jpg"], "ci_1")

        assert result.error == "Token expired"
        assert result.status_code == 401


class TestLinkedInPublisher:
    @pytest.fixture
    def linkedin_client(self):
        client = AsyncMock(spec=LinkedInClient)
        client.get_user_companies.return_value = [LinkedInCompany(id="111", name="Acme")]
        return client

    @pytest.fixture
    def publisher(self, linkedin_client, media, metrics):
        return LinkedInPublisher(linkedin_client, media, metrics)

    @pytest.mark.asyncio
    async def test_text_post(self, publisher, linkedin_client, metrics, content) -> None:
        linkedin_client.publish_company_post.return_value = PostCreated(post_id="urn:li:share:1")

        result = await publisher.publish("member-token", content, [], "ci_1")

        assert result.provider_id == "urn:li:share:1"
        linkedin_client.publish_company_post.assert_awaited_once_with("111", "member-token", "Hello world")
        assert metrics.record_post_metrics.await_args.args[0].platform == "LINKEDIN"

    @pytest.mark.asyncio
    async def test_image_post(self, publisher, linkedin_client, media, content) -> None:
        linkedin_client.publish_image_post.return_value = PostCreated(post_id="urn:li:share:2")

        result = await publisher.publish("member-token", content, ["https://cdn/1.jpg"], "ci_1")

        assert result.provider_id == "urn:li:share:2"
        media.process_image.assert_awaited_once_with(b"raw-image", "linkedin")
        linkedin_client.publish_image_post.assert_awaited_once_with(
            "111", "member-token", b"processed-image", "Hello world"
        )

    @pytest.mark.asyncio
    async def test_no_companies(self, publisher, linkedin_client, content) -> None:
        linkedin_client.get_user_companies.return_value = []

        result = await publisher.publish("member-token", content, [], "ci_1")

        assert result.error == "No LinkedIn companies found for this account"

    @pytest.mark.asyncio
    async def test_transport_error(self, publisher, linkedin_client, content) -> None:
        linkedin_client.get_user_companies.side_effect = httpx.ConnectError(
            "connection refused",
            request=httpx.Request("GET", "https://api.linkedin.com/v2/organizationAcls"),
        )

        result = await publisher.publish("member-token", content, [], "ci_1")

        assert result.success is False
        assert result.error == "connection refused"
        assert result.status_code is None


class TestYouTubePublisher:
    @pytest.fixture
    def publisher(self):
        return YouTubePublisher(base_url="https://youtube.test/v3", timeout=30.0)

    def test_platform(self, publisher) -> None:
        assert publisher.platform is Platform.YOUTUBE

    @pytest.mark.asyncio
    async def test_creates_video_resource(self, publisher, json_response) -> None:
        content = PostContent(body="Description", title="Title", tags=["launch"])

        with patch("httpx.AsyncClient") as mock_client:
            post = AsyncMock(return_value=json_response({"id": "vid_1"}))
            mock_client.return_value.__aenter__.return_value.post = post

            result = await publisher.publish("google-token", content, [], "ci_1")

        assert result.success is True
        assert result.provider_id == "vid_1"
        assert result.status_code == 200
        mock_client.assert_called_once_with(timeout=30.0)
        assert post.await_args.args[0] == "https://youtube.test/v3/videos"
        assert post.await_args.kwargs["headers"]["Authorization"] == "Bearer google-token"
        assert post.await_args.kwargs["json"] == {
            "snippet": {"title": "Title", "description": "Description", "tags": ["launch"]},
            "status": {"privacyStatus": "public"},
        }

    @pytest.mark.asyncio
    async def test_server_error(self, publisher) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.HTTPStatusError(
                    "Error",
                    request=MagicMock(),
                    response=MagicMock(status_code=503),
                )
            )

            result = await publisher.publish("google-token", PostContent(body="x"), [], "ci_1")

        assert result.success is False
        assert result.status_code == 503


class TestGoogleBusinessPublisher:
    @pytest.fixture
    def publisher(self):
        return GoogleBusinessPublisher(
            account_id="acc_1",
            location_id="loc_1",
            base_url="https://business.test/v4",
            fallback_url="https://acme.example",
        )

    @pytest.mark.asyncio
    async def test_creates_local_post(self, publisher, json_response) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            post = AsyncMock(return_value=json_response({"name": "accounts/acc_1/locations/loc_1/localPosts/9"}))
            mock_client.return_value.__aenter__.return_value.post = post

            result = await publisher.publish(
                "google-token",
                PostContent(body="Body", title="Summer sale"),
                ["https://acme.example/sale"],
                "ci_1",
            )

        assert result.provider_id == "accounts/acc_1/locations/loc_1/localPosts/9"
        assert post.await_args.args[0] == "https://business.test/v4/accounts/acc_1/locations/loc_1/posts"
        assert post.await_args.kwargs["json"] == {
            "summary": "Summer sale",
            "callToAction": {"actionType": "LEARN_MORE", "url": "https://acme.example/sale"},
        }

    @pytest.mark.asyncio
    async def test_fallback_url_and_body_summary(self, publisher, json_response) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            post = AsyncMock(return_value=json_response({"name": "posts/1"}))
            mock_client.return_value.__aenter__.return_value.post = post

            await publisher.publish("google-token", PostContent(body="Open late today"), [], "ci_1")

        body = post.await_args.kwargs["json"]
        assert body["summary"] == "Open late today"
        assert body["callToAction"]["url"] == "https://acme.example"

    @pytest.mark.asyncio
    async def test_missing_name(self, publisher, json_response) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=json_response({}))

            result = await publisher.publish("google-token", PostContent(body="x"), [], "ci_1")

        assert result.success is False
        assert result.status_code == 400
