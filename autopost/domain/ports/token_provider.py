"""Outbound port for platform access tokens."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    dummy: bool = False


class TokenProvider(ABC):
    """
    Supplies a currently valid access token.

    The organization is an explicit argument so a single provider can be
    shared by concurrent dispatches for different organizations.
    """

    @abstractmethod
    async def get_valid_access_token(
        self,
        platform: str,
        organization_id: str | None = None,
    ) -> AccessToken | None:
        """
        Return a usable token, refreshing it if the implementation supports that.

        Args:
            platform: Lower-case platform name (facebook, instagram, ...)
            organization_id: Tenant whose connection should be used

        Returns:
            AccessToken, or None when no connection is configured
        """
        ...
