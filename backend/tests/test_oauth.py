import asyncio
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from inflio.config import Settings
from inflio.errors import AppError
from inflio.services.encryption_service import EncryptionService
from inflio.social.oauth_config import (
    build_platform_configs,
    generate_oauth_url,
    get_platform_config,
    validate_platform_config,
)
from inflio.social.oauth_service import OAuthService, TokenData

pytestmark = pytest.mark.unit

CONFIGS = build_platform_configs(
    Settings(
        app_url="https://app.example.com",
        linkedin_client_id="li-id",
        linkedin_client_secret="li-secret",
        google_client_id="g-id",
        google_client_secret="g-secret",
        facebook_app_id="fb-id",
    )
)


def test_oauth_url_carries_client_scopes_and_state():
    url = urlparse(generate_oauth_url("linkedin", "state-abc", CONFIGS))
    params = {k: v[0] for k, v in parse_qs(url.query).items()}

    assert url.netloc == "www.linkedin.com"
    assert params["client_id"] == "li-id"
    assert params["state"] == "state-abc"
    assert params["response_type"] == "code"
    assert params["scope"] == "r_liteprofile r_emailaddress w_member_social"
    assert params["redirect_uri"] == "https://app.example.com/api/social/callback/linkedin"


def test_platform_specific_parameters():
    youtube = parse_qs(urlparse(generate_oauth_url("youtube", "s", CONFIGS)).query)
    instagram = parse_qs(urlparse(generate_oauth_url("instagram", "s", CONFIGS)).query)

    assert youtube["client_id"] == ["g-id"]
    assert youtube["include_granted_scopes"] == ["true"]
    assert instagram["display"] == ["popup"]
    # Instagram falls back to the Facebook app id
    assert instagram["client_id"] == ["fb-id"]


def test_unknown_platform_is_rejected():
    with pytest.raises(AppError) as exc_info:
        get_platform_config("myspace", CONFIGS)
    assert exc_info.value.status_code == 400


def test_platform_needs_id_and_secret():
    assert validate_platform_config("linkedin", CONFIGS)
    assert not validate_platform_config("instagram", CONFIGS)
    assert not validate_platform_config("myspace", CONFIGS)


def test_public_config_hides_secrets():
    public = CONFIGS["linkedin"].to_public_dict()
    assert "li-secret" not in str(public)
    assert public["limits"]["text"] == 3000


def test_token_expiration():
    token = TokenData.from_response(
        {"access_token": "a", "refresh_token": "r", "expires_in": 3600}
    )
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert token.expiration(now) == now + timedelta(hours=1)


def test_oauth_state_round_trip_and_expiry():
    service = EncryptionService()
    state = service.create_state({"user_id": "u1", "platform": "x"})

    assert service.read_state(state)["user_id"] == "u1"
    assert service.read_state("not-a-token") is None
    assert service.decrypt(service.encrypt("secret")) == "secret"


def test_failed_token_exchange_raises():
    def handler(request):
        return httpx.Response(400, json={"error": "invalid_grant"})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await OAuthService(client=client).exchange_code_for_token("linkedin", "bad-code")

    with pytest.raises(AppError):
        asyncio.run(run())
