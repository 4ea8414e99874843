import pytest
import requests

import jobtracker.services.oauth_client as oauth
from jobtracker.core.errors import OAuthError, ValidationError


class _Resp:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"status {self.status}")

    def json(self):
        return self.payload


@pytest.fixture
def google(monkeypatch):
    monkeypatch.setattr(oauth.settings, "google_client_id", "client-id")
    monkeypatch.setattr(oauth.settings, "google_client_secret", "client-secret")


def test_unsupported_provider():
    with pytest.raises(ValidationError):
        oauth.exchange_code("myspace", "code")


def test_unconfigured_provider(monkeypatch):
    monkeypatch.setattr(oauth.settings, "linkedin_client_id", "")
    with pytest.raises(OAuthError, match="not configured"):
        oauth.exchange_code("linkedin", "code")


def test_exchange_code_returns_profile(monkeypatch, google):
    calls = {}

    def _post(url, data, timeout):
        calls["post"] = (url, data)
        return _Resp({"access_token": "at", "refresh_token": "rt"})

    def _get(url, headers, timeout):
        calls["get"] = headers
        return _Resp({"sub": "g-123", "email": "asha@example.com", "given_name": "Asha", "family_name": "Rao"})

    monkeypatch.setattr(oauth.requests, "post", _post)
    monkeypatch.setattr(oauth.requests, "get", _get)
    profile = oauth.exchange_code("google", "auth-code")

    assert profile.id == "g-123"
    assert profile.display_name == "Asha Rao"
    assert profile.refresh_token == "rt"
    assert calls["post"][1]["code"] == "auth-code"
    assert calls["post"][1]["redirect_uri"].endswith("/auth/oauth/google/callback")
    assert calls["get"] == {"Authorization": "Bearer at"}


def test_exchange_code_http_failure(monkeypatch, google):
    monkeypatch.setattr(oauth.requests, "post", lambda url, data, timeout: _Resp({"error": "invalid_grant"}, 400))
    with pytest.raises(OAuthError, match="sign-in failed"):
        oauth.exchange_code("google", "bad")


def test_exchange_code_requires_subject(monkeypatch, google):
    monkeypatch.setattr(oauth.requests, "post", lambda url, data, timeout: _Resp({"access_token": "at"}))
    monkeypatch.setattr(oauth.requests, "get", lambda url, headers, timeout: _Resp({"email": "x@example.com"}))
    with pytest.raises(OAuthError, match="user id"):
        oauth.exchange_code("google", "code")
