"""
TokenProvider implementations.

SqlTokenProvider reads the organization's latest connected token from the
tokens table, decrypts it and refreshes it shortly before expiry.
SettingsTokenProvider serves static tokens from configuration and covers
requests that carry no organization.
"""

import base64
import hashlib
import os
import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx
import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.ports import AccessToken, TokenProvider
from ..logging import sanitize_for_logging
from .session import session_scope

logger = structlog.get_logger()

# Tokens minted by the dev OAuth shortcut; never sent to a provider
DUMMY_TOKEN_PREFIX = "dummy_access_"

# Meta tokens cover both Facebook Pages and Instagram; Google tokens cover
# YouTube and Business Profile.
_TOKEN_FAMILY = {
    "facebook": "meta",
    "instagram": "meta",
    "linkedin": "linkedin",
    "youtube": "google",
    "gbp": "google",
}

# social_accounts.platform value holding each platform's connection
_ACCOUNT_PLATFORM = {
    "facebook": "FACEBOOK",
    "instagram": "FACEBOOK",
    "linkedin": "LINKEDIN",
    "youtube": "YOUTUBE",
    "gbp": "GBP",
}

_IV_LENGTH = 12
_TAG_LENGTH = 16


def _access_token(token: str) -> AccessToken:
    return AccessToken(access_token=token, dummy=token.startswith(DUMMY_TOKEN_PREFIX))


class TokenCipher:
    """
    AES-256-GCM codec for stored tokens.

    Ciphertext layout is base64(iv | tag | data) with a SHA-256 derived key,
    the format the API service writes when a connection is made.
    """

    def __init__(self, secret: str) -> None:
        self._aead = AESGCM(hashlib.sha256(secret.encode()).digest())

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(_IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode(), None)
        data, tag = sealed[:-_TAG_LENGTH], sealed[-_TAG_LENGTH:]
        return base64.b64encode(iv + tag + data).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Raises InvalidTag when the key or data is wrong."""
        raw = base64.b64decode(ciphertext)
        iv = raw[:_IV_LENGTH]
        tag = raw[_IV_LENGTH : _IV_LENGTH + _TAG_LENGTH]
        data = raw[_IV_LENGTH + _TAG_LENGTH :]
        return self._aead.decrypt(iv, data + tag, None).decode()


@dataclass(frozen=True)
class RefreshedToken:
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


class OAuthTokenRefresher:
    """Exchanges refresh tokens at the LinkedIn and Google OAuth endpoints."""

    def __init__(
        self,
        linkedin_client_id: str = "",
        linkedin_client_secret: str = "",
        google_client_id: str = "",
        google_client_secret: str = "",
        linkedin_token_url: str = "https://www.linkedin.com/oauth/v2/accessToken",
        google_token_url: str = "https://oauth2.googleapis.com/token",
        timeout: float = 30.0,
    ) -> None:
        self._clients = {
            "linkedin": (linkedin_token_url, linkedin_client_id, linkedin_client_secret),
            "google": (google_token_url, google_client_id, google_client_secret),
        }
        self._timeout = timeout

    async def refresh(self, family: str, refresh_token: str) -> RefreshedToken | None:
        """
        Exchange a refresh token.

        Returns:
            RefreshedToken, or None when the family cannot be refreshed here
        """
        if family not in self._clients:
            # Meta long-lived tokens are exchanged per asset by the API service
            logger.info("Token refresh not supported", family=family)
            return None

        url, client_id, client_secret = self._clients[family]
        if not client_id or not client_secret:
            logger.warning("Missing OAuth client credentials", family=family)
            return None

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": client_id,
                    "client_secret": client_secret,
                },
            )
            response.raise_for_status()
            data = response.json()

        access_token = data.get("access_token")
        if not access_token:
            return None
        return RefreshedToken(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
        )


class SqlTokenProvider(TokenProvider):
    """
    Serves each organization's own connected token.

    Tokens are looked up per (organization, platform). A token expiring
    within the refresh window is refreshed and the new version stored;
    a failed refresh falls back to the current token. Requests without an
    organization go to the fallback provider.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cipher: TokenCipher,
        refresher: OAuthTokenRefresher | None = None,
        fallback: TokenProvider | None = None,
        refresh_window_seconds: int = 900,
    ) -> None:
        self._session_factory = session_factory
        self._cipher = cipher
        self._refresher = refresher
        self._fallback = fallback
        self._refresh_window = timedelta(seconds=refresh_window_seconds)

    async def get_valid_access_token(
        self,
        platform: str,
        organization_id: str | None = None,
    ) -> AccessToken | None:
        platform = platform.lower()
        account_platform = _ACCOUNT_PLATFORM.get(platform)
        if account_platform is None:
            logger.warning("No token family for platform", platform=platform)
            return None

        if not organization_id:
            if self._fallback is None:
                return None
            return await self._fallback.get_valid_access_token(platform)

        log = logger.bind(platform=platform, organization_id=organization_id)

        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                text("""
                    SELECT t.social_account_id, t.access_token_enc, t.refresh_token_enc, t.expires_at
                    FROM tokens t
                    JOIN social_accounts sa ON t.social_account_id = sa.id
                    WHERE sa.platform = :platform AND sa.organization_id = :organization_id
                    ORDER BY t.created_at DESC
                    LIMIT 1
                """),
                {"platform": account_platform, "organization_id": organization_id},
            )
            row = result.fetchone()

        if row is None:
            log.warning("No connected account token")
            return None

        social_account_id, access_enc, refresh_enc, expires_at = row
        try:
            access = self._cipher.decrypt(access_enc)
            refresh = self._cipher.decrypt(refresh_enc) if refresh_enc else None
        except (InvalidTag, ValueError):
            log.error("Stored token could not be decrypted", social_account_id=social_account_id)
            return None

        token = _access_token(access)
        if not token.dummy and refresh and self._near_expiry(expires_at):
            refreshed = await self._refresh(platform, social_account_id, refresh)
            if refreshed is not None:
                token = _access_token(refreshed)

        log.debug("Access token resolved", token=sanitize_for_logging(token.access_token), dummy=token.dummy)
        return token

    def _near_expiry(self, expires_at: datetime | None) -> bool:
        if expires_at is None:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at - datetime.now(UTC) < self._refresh_window

    async def _refresh(self, platform: str, social_account_id: str, refresh_token: str) -> str | None:
        if self._refresher is None:
            return None

        family = _TOKEN_FAMILY[platform]
        try:
            refreshed = await self._refresher.refresh(family, refresh_token)
        except httpx.HTTPError as e:
            logger.warning("Proactive token refresh failed", platform=platform, error=str(e))
            return None
        if refreshed is None:
            return None

        try:
            await self._store(social_account_id, refreshed)
        except Exception as e:
            logger.error("Failed to store refreshed token", platform=platform, error=str(e))
        logger.info("Access token refreshed", platform=platform, social_account_id=social_account_id)
        return refreshed.access_token

    async def _store(self, social_account_id: str, refreshed: RefreshedToken) -> None:
        expires_at = (
            datetime.now(UTC) + timedelta(seconds=int(refreshed.expires_in))
            if refreshed.expires_in
            else None
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(
                text("""
                    INSERT INTO tokens (
                        id, social_account_id, access_token_enc, refresh_token_enc, expires_at, scopes, created_at
                    )
                    VALUES (:id, :social_account_id, :access_token_enc, :refresh_token_enc, :expires_at, 'refresh', NOW())
                """),
                {
                    "id": f"tok_{int(time.time() * 1000)}_{secrets.token_hex(4)}",
                    "social_account_id": social_account_id,
                    "access_token_enc": self._cipher.encrypt(refreshed.access_token),
                    "refresh_token_enc": (
                        self._cipher.encrypt(refreshed.refresh_token) if refreshed.refresh_token else None
                    ),
                    "expires_at": expires_at,
                },
            )
            await session.commit()


class SettingsTokenProvider(TokenProvider):
    """
    Serves static access tokens from configuration.

    Per-organization overrides take precedence over the default tokens.
    Overrides are keyed by organization id, then by token family
    (meta, linkedin, google) or platform name.
    """

    def __init__(
        self,
        meta_access_token: str = "",
        linkedin_access_token: str = "",
        google_access_token: str = "",
        organization_tokens: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        self._defaults = {
            "meta": meta_access_token,
            "linkedin": linkedin_access_token,
            "google": google_access_token,
        }
        self._organization_tokens = {k: dict(v) for k, v in (organization_tokens or {}).items()}

    async def get_valid_access_token(
        self,
        platform: str,
        organization_id: str | None = None,
    ) -> AccessToken | None:
        platform = platform.lower()
        family = _TOKEN_FAMILY.get(platform)
        if family is None:
            logger.warning("No token family for platform", platform=platform)
            return None

        token = ""
        if organization_id:
            overrides = self._organization_tokens.get(organization_id, {})
            token = overrides.get(platform) or overrides.get(family) or ""
        token = token or self._defaults.get(family, "")

        if not token:
            logger.warning("No access token configured", platform=platform, organization_id=organization_id)
            return None

        logger.debug(
            "Access token resolved",
            platform=platform,
            organization_id=organization_id,
            token=sanitize_for_logging(token),
        )
        return _access_token(token)
