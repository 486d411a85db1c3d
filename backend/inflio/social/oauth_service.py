"""
OAuth authorization-code handling for social platforms.

Exchanges codes for tokens, fetches the connected account's profile and
stores the integration with encrypted tokens.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from inflio.config import settings
from inflio.crud.social import social_crud
from inflio.errors import AppError
from inflio.models import SocialIntegration, utc_now
from inflio.services.encryption_service import encryption_service
from inflio.services.retry import request_with_retry
from inflio.social.oauth_config import PlatformConfig, get_platform_config
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

LINKEDIN_ME_URL = "https://api.linkedin.com/v2/me"
LINKEDIN_EMAIL_URL = (
    "https://api.linkedin.com/v2/emailAddress?q=members&projection=(elements*(handle~))"
)


@dataclass
class TokenData:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TokenData":
        if not data.get("access_token"):
            raise AppError("Token response missing access_token", "OAUTH_TOKEN_ERROR")
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=int(expires_in) if expires_in else None,
            token_type=data.get("token_type"),
        )

    def expiration(self, now: Optional[datetime] = None) -> Optional[datetime]:
        if not self.expires_in:
            return None
        return (now or utc_now()) + timedelta(seconds=self.expires_in)


@dataclass
class UserProfile:
    id: str
    name: str
    email: Optional[str] = None
    picture: Optional[str] = None
    username: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "picture": self.picture,
            "username": self.username,
        }


class OAuthService:
    """Token exchange, refresh and profile lookups for every platform."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await request_with_retry(self._client, method, url, **kwargs)
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            return await request_with_retry(client, method, url, **kwargs)

    async def exchange_code_for_token(self, platform: str, code: str) -> TokenData:
        config = get_platform_config(platform)
        oauth = config.oauth

        if platform == "tiktok":
            response = await self._request(
                "POST",
                oauth.token_url,
                data={
                    "client_key": oauth.client_id,
                    "client_secret": oauth.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                },
            )
            self._raise_for_token(platform, response)
            return TokenData.from_response(response.json().get("data") or {})

        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": oauth.redirect_uri,
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
        }
        kwargs: Dict[str, Any] = {"data": form}
        if platform == "x":
            # X expects confidential clients to authenticate with HTTP Basic
            kwargs["auth"] = (oauth.client_id, oauth.client_secret)

        response = await self._request("POST", oauth.token_url, **kwargs)
        self._raise_for_token(platform, response)
        return TokenData.from_response(response.json())

    @staticmethod
    def _raise_for_token(platform: str, response: httpx.Response) -> None:
        if not response.is_success:
            logger.error(
                "Token exchange failed",
                platform=platform,
                status_code=response.status_code,
            )
            raise AppError(
                f"{platform} token exchange failed: {response.text[:200]}",
                "OAUTH_TOKEN_ERROR",
            )

    async def refresh_access_token(self, platform: str, refresh_token: str) -> TokenData:
        config = get_platform_config(platform)
        response = await self._request(
            "POST",
            config.oauth.token_url,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": config.oauth.client_id,
                "client_secret": config.oauth.client_secret,
            },
        )
        if not response.is_success:
            logger.error(
                "Token refresh failed", platform=platform, status_code=response.status_code
            )
            raise AppError("Failed to refresh token", "TOKEN_REFRESH_ERROR")

        data = response.json()
        if platform == "tiktok":
            data = data.get("data") or {}
        token = TokenData.from_response(data)
        # Some providers only return a new refresh token when they rotate it
        token.refresh_token = token.refresh_token or refresh_token
        return token

    async def get_user_profile(self, platform: str, access_token: str) -> UserProfile:
        config = get_platform_config(platform)
        fetchers = {
            "instagram": self._graph_profile,
            "facebook": self._graph_profile,
            "threads": self._threads_profile,
            "x": self._x_profile,
            "linkedin": self._linkedin_profile,
            "youtube": self._google_profile,
            "tiktok": self._tiktok_profile,
        }
        fetcher = fetchers.get(platform)
        if not fetcher:
            raise AppError(f"Platform {platform} not supported", "INVALID_PLATFORM", 400)
        return await fetcher(config, access_token)

    def _profile_error(self, platform: str) -> AppError:
        return AppError(f"Failed to fetch {platform} profile", "PROFILE_FETCH_ERROR")

    async def _graph_profile(self, config: PlatformConfig, token: str) -> UserProfile:
        response = await self._request(
            "GET",
            f"{config.api_base_url}/me",
            params={"fields": "id,name,email,picture", "access_token": token},
        )
        if not response.is_success:
            raise self._profile_error(config.name)
        data = response.json()
        return UserProfile(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data.get("email"),
            picture=((data.get("picture") or {}).get("data") or {}).get("url"),
            username=data.get("username"),
            raw=data,
        )

    async def _threads_profile(self, config: PlatformConfig, token: str) -> UserProfile:
        response = await self._request(
            "GET",
            f"{config.api_base_url}/me",
            params={
                "fields": "id,username,name,threads_profile_picture_url",
                "access_token": token,
            },
        )
        if not response.is_success:
            raise self._profile_error(config.name)
        data = response.json()
        return UserProfile(
            id=str(data["id"]),
            name=data.get("name") or data.get("username", ""),
            username=data.get("username"),
            picture=data.get("threads_profile_picture_url"),
            raw=data,
        )

    async def _x_profile(self, config: PlatformConfig, token: str) -> UserProfile:
        response = await self._request(
            "GET",
            f"{config.api_base_url}/users/me",
            params={"user.fields": "profile_image_url,username"},
            headers={"Authorization": f"Bearer {token}"},
        )
        if not response.is_success:
            raise self._profile_error(config.name)
        data = response.json()["data"]
        return UserProfile(
            id=str(data["id"]),
            name=data.get("name", ""),
            username=data.get("username"),
            picture=data.get("profile_image_url"),
            raw=data,
        )

    async def _linkedin_profile(self, config: PlatformConfig, token: str) -> UserProfile:
        headers = {"Authorization": f"Bearer {token}"}
        profile_response, email_response = await asyncio.gather(
            self._request("GET", LINKEDIN_ME_URL, headers=headers),
            self._request("GET", LINKEDIN_EMAIL_URL, headers=headers),
        )
        if not profile_response.is_success or not email_response.is_success:
            raise self._profile_error(config.name)

        profile = profile_response.json()
        elements = email_response.json().get("elements") or [{}]
        first = profile.get("localizedFirstName", "")
        last = profile.get("localizedLastName", "")
        return UserProfile(
            id=str(profile["id"]),
            name=f"{first} {last}".strip(),
            email=(elements[0].get("handle~") or {}).get("emailAddress"),
            picture=(profile.get("profilePicture") or {}).get("displayImage"),
            raw=profile,
        )

    async def _google_profile(self, config: PlatformConfig, token: str) -> UserProfile:
        response = await self._request(
            "GET", config.oauth.user_info_url, params={"access_token": token}
        )
        if not response.is_success:
            raise self._profile_error(config.name)
        data = response.json()
        return UserProfile(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data.get("email"),
            picture=data.get("picture"),
            raw=data,
        )

    async def _tiktok_profile(self, config: PlatformConfig, token: str) -> UserProfile:
        response = await self._request(
            "GET",
            f"{config.api_base_url}/user/info/",
            headers={"Authorization": f"Bearer {token}"},
        )
        if not response.is_success:
            raise self._profile_error(config.name)
        user = response.json()["data"]["user"]
        return UserProfile(
            id=str(user["open_id"]),
            name=user.get("display_name", ""),
            username=user.get("username"),
            picture=user.get("avatar_url"),
            raw=user,
        )

    async def connect_integration(
        self, session: AsyncSession, user_id: str, platform: str, code: str
    ) -> SocialIntegration:
        """Complete the OAuth flow and upsert the integration row."""
        token = await self.exchange_code_for_token(platform, code)
        profile = await self.get_user_profile(platform, token.access_token)

        integration = await social_crud.upsert_integration(
            session,
            user_id=user_id,
            platform=platform,
            internal_id=profile.id,
            name=profile.name,
            picture=profile.picture,
            provider_identifier=profile.username or profile.id,
            token=encryption_service.encrypt(token.access_token),
            refresh_token=(
                encryption_service.encrypt(token.refresh_token)
                if token.refresh_token
                else None
            ),
            token_expiration=token.expiration(),
            profile=profile.to_dict(),
            disabled=False,
            refresh_needed=False,
        )
        logger.info(
            "Social integration connected",
            platform=platform,
            integration_id=str(integration.id),
        )
        return integration


oauth_service = OAuthService()
