"""
Per-platform OAuth and publishing configuration.

Credentials come from settings, with the same fallbacks between app-level
and platform-level variables that the frontend environment uses.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlencode

from inflio.config import Settings, settings
from inflio.errors import AppError


@dataclass(frozen=True)
class OAuthConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    authorization_url: str
    token_url: str
    scopes: List[str]
    user_info_url: Optional[str] = None


@dataclass(frozen=True)
class PlatformLimits:
    text: int
    images: int
    videos: int
    video_duration: int


@dataclass(frozen=True)
class PlatformConfig:
    name: str
    icon: str
    color: str
    oauth: OAuthConfig
    api_base_url: str
    publish_endpoint: str
    media_types: List[str] = field(default_factory=list)
    limits: PlatformLimits = field(default_factory=lambda: PlatformLimits(0, 0, 0, 0))

    def to_public_dict(self) -> dict:
        """Description safe to send to clients (no secrets)."""
        return {
            "name": self.name,
            "icon": self.icon,
            "color": self.color,
            "scopes": list(self.oauth.scopes),
            "media_types": list(self.media_types),
            "limits": {
                "text": self.limits.text,
                "images": self.limits.images,
                "videos": self.limits.videos,
                "video_duration": self.limits.video_duration,
            },
        }


def _first(*values: str) -> str:
    for value in values:
        if value:
            return value
    return ""


def build_platform_configs(cfg: Settings) -> Dict[str, PlatformConfig]:
    """Build the registry from a settings object."""

    def redirect(platform: str) -> str:
        return f"{cfg.public_app_url}/api/social/callback/{platform}"

    return {
        "instagram": PlatformConfig(
            name="Instagram",
            icon="instagram",
            color="#E4405F",
            oauth=OAuthConfig(
                client_id=_first(cfg.instagram_client_id, cfg.instagram_app_id, cfg.facebook_app_id),
                client_secret=_first(
                    cfg.instagram_client_secret, cfg.instagram_app_secret, cfg.facebook_app_secret
                ),
                redirect_uri=redirect("instagram"),
                authorization_url="https://www.facebook.com/v18.0/dialog/oauth",
                token_url="https://graph.facebook.com/v18.0/oauth/access_token",
                scopes=[
                    "public_profile",
                    "email",
                    "instagram_basic",
                    "instagram_content_publish",
                    "instagram_manage_comments",
                    "instagram_manage_insights",
                    "pages_show_list",
                    "pages_read_engagement",
                    "business_management",
                ],
            ),
            api_base_url="https://graph.instagram.com",
            publish_endpoint="/me/media_publish",
            media_types=["image/jpeg", "image/png", "video/mp4"],
            limits=PlatformLimits(text=2200, images=10, videos=1, video_duration=60),
        ),
        "facebook": PlatformConfig(
            name="Facebook",
            icon="facebook",
            color="#1877F2",
            oauth=OAuthConfig(
                client_id=cfg.facebook_app_id,
                client_secret=cfg.facebook_app_secret,
                redirect_uri=redirect("facebook"),
                authorization_url="https://www.facebook.com/v18.0/dialog/oauth",
                token_url="https://graph.facebook.com/v18.0/oauth/access_token",
                scopes=[
                    "pages_show_list",
                    "pages_read_engagement",
                    "pages_manage_posts",
                    "pages_read_user_content",
                    "public_profile",
                ],
            ),
            api_base_url="https://graph.facebook.com/v18.0",
            publish_endpoint="/me/feed",
            media_types=["image/jpeg", "image/png", "video/mp4"],
            limits=PlatformLimits(text=63206, images=10, videos=1, video_duration=240),
        ),
        "x": PlatformConfig(
            name="X (Twitter)",
            icon="twitter",
            color="#000000",
            oauth=OAuthConfig(
                client_id=_first(cfg.twitter_client_id, cfg.x_api_key),
                client_secret=_first(cfg.twitter_client_secret, cfg.x_api_secret),
                redirect_uri=redirect("x"),
                authorization_url="https://twitter.com/i/oauth2/authorize",
                token_url="https://api.twitter.com/2/oauth2/token",
                scopes=["tweet.read", "tweet.write", "users.read", "offline.access"],
                user_info_url="https://api.twitter.com/2/users/me",
            ),
            api_base_url="https://api.twitter.com/2",
            publish_endpoint="/tweets",
            media_types=["image/jpeg", "image/png", "image/gif", "video/mp4"],
            limits=PlatformLimits(text=280, images=4, videos=1, video_duration=140),
        ),
        "linkedin": PlatformConfig(
            name="LinkedIn",
            icon="linkedin",
            color="#0A66C2",
            oauth=OAuthConfig(
                client_id=cfg.linkedin_client_id,
                client_secret=cfg.linkedin_client_secret,
                redirect_uri=redirect("linkedin"),
                authorization_url="https://www.linkedin.com/oauth/v2/authorization",
                token_url="https://www.linkedin.com/oauth/v2/accessToken",
                scopes=["r_liteprofile", "r_emailaddress", "w_member_social"],
                user_info_url="https://api.linkedin.com/v2/me",
            ),
            api_base_url="https://api.linkedin.com/v2",
            publish_endpoint="/ugcPosts",
            media_types=["image/jpeg", "image/png", "video/mp4"],
            limits=PlatformLimits(text=3000, images=9, videos=1, video_duration=600),
        ),
        "youtube": PlatformConfig(
            name="YouTube",
            icon="youtube",
            color="#FF0000",
            oauth=OAuthConfig(
                client_id=_first(cfg.youtube_client_id, cfg.google_client_id),
                client_secret=_first(cfg.youtube_client_secret, cfg.google_client_secret),
                redirect_uri=redirect("youtube"),
                authorization_url="https://accounts.google.com/o/oauth2/v2/auth",
                token_url="https://oauth2.googleapis.com/token",
                scopes=[
                    "https://www.googleapis.com/auth/youtube.upload",
                    "https://www.googleapis.com/auth/youtube",
                    "https://www.googleapis.com/auth/userinfo.profile",
                ],
                user_info_url="https://www.googleapis.com/oauth2/v1/userinfo",
            ),
            api_base_url="https://www.googleapis.com/youtube/v3",
            publish_endpoint="/videos",
            media_types=["video/mp4", "video/quicktime", "video/x-msvideo"],
            # 12 hours
            limits=PlatformLimits(text=5000, images=0, videos=1, video_duration=43200),
        ),
        "tiktok": PlatformConfig(
            name="TikTok",
            icon="tiktok",
            color="#000000",
            oauth=OAuthConfig(
                client_id=cfg.tiktok_client_key,
                client_secret=cfg.tiktok_client_secret,
                redirect_uri=redirect("tiktok"),
                authorization_url="https://www.tiktok.com/auth/authorize",
                token_url="https://open-api.tiktok.com/oauth/access_token",
                scopes=["user.info.basic", "video.list", "video.upload"],
                user_info_url="https://open-api.tiktok.com/user/info/",
            ),
            api_base_url="https://open-api.tiktok.com",
            publish_endpoint="/video/upload",
            media_types=["video/mp4"],
            limits=PlatformLimits(text=2200, images=0, videos=1, video_duration=180),
        ),
        "threads": PlatformConfig(
            name="Threads",
            icon="threads",
            color="#000000",
            oauth=OAuthConfig(
                client_id=_first(cfg.threads_client_id, cfg.facebook_app_id),
                client_secret=_first(cfg.threads_client_secret, cfg.facebook_app_secret),
                redirect_uri=redirect("threads"),
                authorization_url="https://www.threads.net/oauth/authorize",
                token_url="https://graph.threads.net/oauth/access_token",
                scopes=["threads_basic", "threads_content_publish"],
            ),
            api_base_url="https://graph.threads.net/v1.0",
            publish_endpoint="/me/threads_publish",
            media_types=["image/jpeg", "image/png", "video/mp4"],
            limits=PlatformLimits(text=500, images=10, videos=1, video_duration=90),
        ),
    }


PLATFORM_CONFIGS: Dict[str, PlatformConfig] = build_platform_configs(settings)


def get_platform_config(
    platform: str, configs: Optional[Dict[str, PlatformConfig]] = None
) -> PlatformConfig:
    config = (configs or PLATFORM_CONFIGS).get(platform)
    if not config:
        raise AppError(f"Platform {platform} not supported", "INVALID_PLATFORM", 400)
    return config


def generate_oauth_url(
    platform: str, state: str, configs: Optional[Dict[str, PlatformConfig]] = None
) -> str:
    """Authorization URL the user is redirected to when connecting ``platform``."""
    config = get_platform_config(platform, configs)

    params = {
        "client_id": config.oauth.client_id,
        "redirect_uri": config.oauth.redirect_uri,
        "response_type": "code",
        "scope": " ".join(config.oauth.scopes),
        "state": state,
        "access_type": "offline",
        "prompt": "consent",
    }
    if platform in ("instagram", "facebook"):
        params["display"] = "popup"
    if platform == "youtube":
        params["include_granted_scopes"] = "true"

    return f"{config.oauth.authorization_url}?{urlencode(params)}"


def validate_platform_config(
    platform: str, configs: Optional[Dict[str, PlatformConfig]] = None
) -> bool:
    """True when the platform has both a client id and a client secret configured."""
    config = (configs or PLATFORM_CONFIGS).get(platform)
    if not config:
        return False

    def present(value: str) -> bool:
        return bool(value) and value != "undefined"

    return present(config.oauth.client_id) and present(config.oauth.client_secret)
