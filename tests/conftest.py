from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from autopost.domain.ports import (
    AccessToken,
    ContentItem,
    ContentStore,
    ContentVersion,
    MediaProcessor,
    MetricsRecorder,
    ProcessedImage,
    TokenProvider,
)


@pytest.fixture
def content_store():
    store = AsyncMock(spec=ContentStore)
    store.get_content_schedules.return_value = []
    store.get_autopost_settings.return_value = None
    store.get_content_item.return_value = ContentItem(id="ci_1", organization_id="org_1", title="Launch")
    store.get_current_content_version.return_value = ContentVersion(
        id="cv_1",
        body="Hello world",
        title="Launch",
        metadata={"templateId": "tpl_1"},
    )
    store.insert_publish_dlq.return_value = "pdlq_1"
    return store


@pytest.fixture
def token_provider():
    provider = AsyncMock(spec=TokenProvider)
    provider.get_valid_access_token.return_value = AccessToken(access_token="user-token")
    return provider


@pytest.fixture
def media():
    processor = AsyncMock(spec=MediaProcessor)
    processor.fetch.return_value = b"raw-image"
    processor.process_image.return_value = ProcessedImage(
        buffer=b"processed-image",
        width=1080,
        height=1080,
        format="jpeg",
    )
    return processor


@pytest.fixture
def metrics():
    return AsyncMock(spec=MetricsRecorder)


@pytest.fixture
def json_response():
    """Factory for mocked httpx responses carrying a JSON body."""

    def build(data: dict, status_code: int = 200) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = data
        response.headers = {}
        response.raise_for_status = MagicMock()
        return response

    return build


@pytest.fixture
def session_factory():
    """Factory for async_sessionmaker stand-ins handing out sessions in order; the last one repeats."""

    def build(*sessions) -> MagicMock:
        queue = list(sessions)

        @asynccontextmanager
        async def open_session():
            yield queue.pop(0) if len(queue) > 1 else queue[0]

        return MagicMock(side_effect=open_session)

    return build
