from dataclasses import dataclass

import httpx
import structlog

from .base import PostCreated, PostFailed, ProviderResult

logger = structlog.get_logger()

_IMAGE_UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"


@dataclass(frozen=True)
class LinkedInCompany:
    """Organization page the member administers."""

    id: str
    name: str = ""
    website: str | None = None
    industry: str | None = None


class LinkedInClient:
    """LinkedIn v2 API primitives for Company Page posts."""

    def __init__(self, base_url: str = "https://api.linkedin.com/v2", timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _headers(self, access_token: str, json_body: bool = False) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def get_user_companies(self, access_token: str) -> list[LinkedInCompany]:
        """Organizations where the member holds the ADMINISTRATOR role."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                f"{self._base_url}/organizationAcls",
                params={"q": "roleAssignee", "role": "ADMINISTRATOR"},
                headers=self._headers(access_token),
            )
            response.raise_for_status()
            company_ids = [
                _organization_id(element)
                for element in response.json().get("elements", [])
            ]

            companies = []
            for company_id in filter(None, company_ids):
                detail = await client.get(
                    f"{self._base_url}/organizations/{company_id}",
                    params={"projection": "(id,localizedName,localizedWebsite,industries)"},
                    headers=self._headers(access_token),
                )
                detail.raise_for_status()
                data = detail.json()
                companies.append(
                    LinkedInCompany(
                        id=str(data.get("id", company_id)),
                        name=data.get("localizedName", ""),
                        website=data.get("localizedWebsite"),
                        industry=(data.get("industries") or [None])[0],
                    )
                )

        return companies

    async def publish_company_post(
        self,
        company_id: str,
        access_token: str,
        text: str,
        visibility: str = "PUBLIC",
    ) -> ProviderResult:
        ugc_post = _ugc_post(company_id, text, visibility)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                f"{self._base_url}/ugcPosts",
                headers=self._headers(access_token, json_body=True),
                json=ugc_post,
            )
            response.raise_for_status()
            post_id = response.json().get("id") or response.headers.get("x-restli-id")

        if not post_id:
            return PostFailed("LinkedIn did not return a post id")
        return PostCreated(post_id=post_id, url=f"https://linkedin.com/feed/update/{post_id}")

    async def publish_image_post(
        self,
        company_id: str,
        access_token: str,
        image: bytes,
        caption: str,
    ) -> ProviderResult:
        """Register an upload, PUT the bytes, then create a UGC post referencing the asset."""
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            register = await client.post(
                f"{self._base_url}/assets",
                params={"action": "registerUpload"},
                headers=self._headers(access_token, json_body=True),
                json={
                    "registerUploadRequest": {
                        "recipes": ["urn:li:digitalmediaRecipe:feedshare-image"],
                        "owner": f"urn:li:organization:{company_id}",
                        "serviceRelationships": [
                            {
                                "relationshipType": "OWNER",
                                "identifier": "urn:li:userGeneratedContent",
                            }
                        ],
                    }
                },
            )
            register.raise_for_status()
            value = register.json().get("value", {})
            upload_url = value.get("uploadMechanism", {}).get(_IMAGE_UPLOAD_MECHANISM, {}).get("uploadUrl")
            asset = value.get("asset")
            if not upload_url or not asset:
                return PostFailed("LinkedIn did not return an upload target")

            upload = await client.put(
                upload_url,
                content=image,
                headers={"Authorization": f"Bearer {access_token}", "Content-Type": "image/jpeg"},
            )
            upload.raise_for_status()

            ugc_post = _ugc_post(company_id, caption, "PUBLIC")
            share = ugc_post["specificContent"]["com.linkedin.ugc.ShareContent"]
            share["shareMediaCategory"] = "IMAGE"
            share["media"] = [
                {
                    "status": "READY",
                    "description": {"text": caption},
                    "media": asset,
                }
            ]

            response = await client.post(
                f"{self._base_url}/ugcPosts",
                headers=self._headers(access_token, json_body=True),
                json=ugc_post,
            )
            response.raise_for_status()
            post_id = response.json().get("id") or response.headers.get("x-restli-id")

        if not post_id:
            return PostFailed("LinkedIn did not return a post id")
        logger.info("LinkedIn image post created", post_id=post_id, asset=asset)
        return PostCreated(post_id=post_id, url=f"https://linkedin.com/feed/update/{post_id}")


def _organization_id(element: dict) -> str | None:
    expanded = element.get("organization~") or {}
    if expanded.get("id"):
        return str(expanded["id"])
    urn = element.get("organization") or element.get("organizationalTarget") or ""
    return urn.rsplit(":", 1)[-1] or None


def _ugc_post(company_id: str, text: str, visibility: str) -> dict:
    return {
        "author": f"urn:li:organization:{company_id}",
        "lifecycleState": "PUBLISHED",
        "specificContent": {
            "com.linkedin.ugc.ShareContent": {
                "shareCommentary": {"text": text},
                "shareMediaCategory": "NONE",
            }
        },
        "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": visibility},
    }
