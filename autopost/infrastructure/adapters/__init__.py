from .content_store_impl import SqlAlchemyContentStore
from .media_processor_impl import HttpMediaProcessor, MediaProcessingError
from .metrics_recorder_impl import SqlAlchemyMetricsRecorder
from .platform_publisher_factory import build_platform_publishers
from .token_provider_impl import (
    DUMMY_TOKEN_PREFIX,
    OAuthTokenRefresher,
    RefreshedToken,
    SettingsTokenProvider,
    SqlTokenProvider,
    TokenCipher,
)

__all__ = [
    "DUMMY_TOKEN_PREFIX",
    "HttpMediaProcessor",
    "MediaProcessingError",
    "OAuthTokenRefresher",
    "RefreshedToken",
    "SettingsTokenProvider",
    "SqlAlchemyContentStore",
    "SqlAlchemyMetricsRecorder",
    "SqlTokenProvider",
    "TokenCipher",
    "build_platform_publishers",
]
