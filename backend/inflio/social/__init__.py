"""Social platform integrations: OAuth, publishers and the posting service."""
from inflio.social.oauth_config import PLATFORM_CONFIGS, generate_oauth_url, get_platform_config
from inflio.social.publishers import PublishOptions, PublishResult, publish_to_social_platform

__all__ = [
    "PLATFORM_CONFIGS",
    "generate_oauth_url",
    "get_platform_config",
    "PublishOptions",
    "PublishResult",
    "publish_to_social_platform",
]
