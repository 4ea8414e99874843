"""Authorization-code exchange for Google and LinkedIn sign-in."""
import logging
from dataclasses import dataclass

import requests

from jobtracker.config import settings
from jobtracker.core.constants import OAUTH_PROVIDERS
from jobtracker.core.errors import OAuthError, ValidationError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10
PROVIDERS = {
    "google": {
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://openidconnect.googleapis.com/v1/userinfo",
    },
    "linkedin": {
        "token_url": "https://www.linkedin.com/oauth/v2/accessToken",
        "userinfo_url": "https://api.linkedin.com/v2/userinfo",
    },
}


@dataclass
class OAuthProfile:
    id: str
    email: str | None
    display_name: str
    access_token: str
    refresh_token: str | None = None


def _credentials(provider: str) -> tuple[str, str]:
    if provider == "google":
        client_id, secret = settings.google_client_id, settings.google_client_secret
    else:
        client_id, secret = settings.linkedin_client_id, settings.linkedin_client_secret
    if not client_id or not secret:
        raise OAuthError(f"{provider} sign-in is not configured")
    return client_id, secret


def redirect_uri(provider: str) -> str:
    return settings.oauth_redirect_uri.format(provider=provider)


def exchange_code(provider: str, code: str) -> OAuthProfile:
    """Trade an authorization code for tokens, then fetch the OpenID userinfo."""
    if provider not in OAUTH_PROVIDERS:
        raise ValidationError(f"Unsupported OAuth provider '{provider}'")
    client_id, secret = _credentials(provider)
    urls = PROVIDERS[provider]
    payload = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri(provider),
        "client_id": client_id,
        "client_secret": secret,
    }
    try:
        token_resp = requests.post(urls["token_url"], data=payload, timeout=REQUEST_TIMEOUT_SECONDS)
        token_resp.raise_for_status()
        tokens = token_resp.json()
        access_token = tokens["access_token"]
        info_resp = requests.get(
            urls["userinfo_url"],
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        info_resp.raise_for_status()
        info = info_resp.json()
    except (requests.RequestException, KeyError, ValueError) as e:
        logger.warning("%s OAuth exchange failed: %s", provider, e)
        raise OAuthError(f"{provider} sign-in failed") from e

    if not info.get("sub"):
        raise OAuthError(f"{provider} did not return a user id")
    display_name = info.get("name") or " ".join(
        p for p in (info.get("given_name"), info.get("family_name")) if p
    )
    return OAuthProfile(
        id=str(info["sub"]),
        email=info.get("email"),
        display_name=display_name,
        access_token=access_token,
        refresh_token=tokens.get("refresh_token"),
    )
