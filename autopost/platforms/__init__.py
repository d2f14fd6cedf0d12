from .base import MediaPostPublisher, PostCreated, PostFailed, ProviderResult
from .errors import handle_provider_error, parse_retry_after
from .facebook import FacebookPublisher
from .google_business import GoogleBusinessPublisher
from .instagram import InstagramPublisher
from .linkedin import LinkedInPublisher
from .linkedin_client import LinkedInClient, LinkedInCompany
from .meta_client import InstagramAccount, MetaClient, MetaPage
from .youtube import YouTubePublisher

__all__ = [
    "FacebookPublisher",
    "GoogleBusinessPublisher",
    "InstagramAccount",
    "InstagramPublisher",
    "LinkedInClient",
    "LinkedInCompany",
    "LinkedInPublisher",
    "MediaPostPublisher",
    "MetaClient",
    "MetaPage",
    "PostCreated",
    "PostFailed",
    "ProviderResult",
    "YouTubePublisher",
    "handle_provider_error",
    "parse_retry_after",
]
