"""
Outbound port for publishing to a single social network.

The dispatcher resolves idempotency, policy, token and content, then hands
off to the PlatformPublisher registered for the request's platform.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Platform(str, Enum):
    """Supported publishing targets."""

    FACEBOOK = "FACEBOOK"
    INSTAGRAM = "INSTAGRAM"
    LINKEDIN = "LINKEDIN"
    YOUTUBE = "YOUTUBE"
    GBP = "GBP"

    @property
    def token_key(self) -> str:
        """Lower-case name used by the token provider."""
        return self.value.lower()

    @classmethod
    def parse(cls, value: str) -> "Platform | None":
        try:
            return cls(value.upper())
        except ValueError:
            return None


@dataclass
class PostContent:
    """Body and metadata handed to a platform publisher."""

    body: str = ""
    title: str | None = None
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PostContent":
        """Build from a loosely shaped dict (adapted content, JSON payloads)."""
        metadata = data.get("metadata") or {}
        tags = data.get("tags") or metadata.get("tags") or []
        return cls(
            body=data.get("body") or "",
            title=data.get("title"),
            tags=list(tags),
            metadata=dict(metadata),
        )

    @property
    def template_version_id(self) -> str | None:
        return self.metadata.get("template_version_id") or self.metadata.get("templateId")


@dataclass
class PublishRequest:
    """A single publish attempt for one content item on one platform."""

    content_item_id: str
    platform: str
    schedule_id: str | None = None
    organization_id: str | None = None
    adapted_content: PostContent | None = None
    media_urls: list[str] = field(default_factory=list)
    scheduled_at: datetime | None = None

    def __post_init__(self) -> None:
        self.platform = self.platform.upper()


@dataclass(frozen=True)
class PublishResult:
    """
    Uniform outcome of a publish attempt.

    Either success with provider_id, or failure with error. retry_after is
    only populated for rate-limited failures.
    """

    success: bool
    provider_id: str | None = None
    error: str | None = None
    retry_after: int | None = None
    status_code: int | None = None

    @classmethod
    def published(cls, provider_id: str, status_code: int = 200) -> "PublishResult":
        return cls(success=True, provider_id=provider_id, status_code=status_code)

    @classmethod
    def failed(
        cls,
        error: str,
        status_code: int | None = None,
        retry_after: int | None = None,
    ) -> "PublishResult":
        return cls(success=False, error=error, status_code=status_code, retry_after=retry_after)

    @property
    def is_retryable(self) -> bool:
        """Rate limits and provider-side 5xx are worth another attempt."""
        if self.success:
            return False
        if self.status_code == 429 or self.retry_after is not None:
            return True
        return self.status_code is not None and self.status_code >= 500

    def to_dict(self) -> dict[str, Any]:
        data = {
            "success": self.success,
            "providerId": self.provider_id,
            "error": self.error,
            "retryAfter": self.retry_after,
            "statusCode": self.status_code,
        }
        return {k: v for k, v in data.items() if v is not None}


class PlatformPublisher(ABC):
    """
    Outbound port for one social network.

    Implementations never raise: provider and transport failures are
    normalized into a failed PublishResult.
    """

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Return the platform this publisher handles."""
        ...

    @abstractmethod
    async def publish(
        self,
        access_token: str,
        content: PostContent,
        media_urls: list[str],
        content_item_id: str,
    ) -> PublishResult:
        """
        Publish content with a live access token.

        Args:
            access_token: Token from the token provider
            content: Adapted content or the item's current version
            media_urls: Ordered media URLs, possibly empty
            content_item_id: Content item being published (for metrics)

        Returns:
            PublishResult with provider id or normalized error
        """
        ...
