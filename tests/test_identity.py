"""
Tests for identity resolution and the Stytch client.

All HTTP calls are mocked at requests.post.
"""
from dataclasses import FrozenInstanceError
from unittest.mock import patch, MagicMock

import pytest
import requests

from rantboard.auth_provider import (
    LIVE_API_URL,
    TEST_API_URL,
    StytchClient,
    api_url_for_project,
    get_identity_provider,
)
from rantboard.errors import AuthenticationRequiredError, IdentityProviderError
from rantboard.identity import Identity, resolve_identity


def _mock_response(status_code=200, payload=None):
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = payload or {}
    return mock_resp


def _client():
    return StytchClient("project-test-123", "secret-xyz", timeout=3, session_duration_minutes=30)


# ── Identity ─────────────────────────────────────────────────────────

class TestIdentity:

    def test_anonymous(self):
        identity = Identity.anonymous()
        assert identity.user_id == ""
        assert identity.authenticated is False

    def test_require_returns_user(self):
        assert Identity.for_user("alice").require("comment") == "alice"

    def test_require_anonymous_raises_with_reason(self):
        with pytest.raises(AuthenticationRequiredError) as exc:
            Identity.anonymous().require("settings")
        assert exc.value.reason == "settings"

    def test_is_immutable(self):
        identity = Identity.for_user("alice")
        with pytest.raises(FrozenInstanceError):
            identity.user_id = "mallory"


class TestResolveIdentity:

    def test_no_token_is_anonymous_without_provider_call(self):
        provider = MagicMock()
        assert resolve_identity(None, provider) == Identity.anonymous()
        assert resolve_identity("", provider) == Identity.anonymous()
        provider.authenticate_session.assert_not_called()

    def test_valid_token(self):
        provider = MagicMock()
        provider.authenticate_session.return_value = "user-live-abc"
        identity = resolve_identity("tok", provider)
        assert identity == Identity.for_user("user-live-abc")
        provider.authenticate_session.assert_called_once_with("tok")

    def test_rejected_token_is_anonymous(self):
        provider = MagicMock()
        provider.authenticate_session.side_effect = IdentityProviderError("expired", status_code=401)
        assert resolve_identity("tok", provider) == Identity.anonymous()

    def test_provider_outage_is_anonymous(self):
        provider = MagicMock()
        provider.authenticate_session.side_effect = IdentityProviderError("unreachable")
        assert resolve_identity("tok", provider) == Identity.anonymous()

    def test_empty_user_id_is_anonymous(self):
        provider = MagicMock()
        provider.authenticate_session.return_value = ""
        assert resolve_identity("tok", provider).authenticated is False


# ── Stytch client ────────────────────────────────────────────────────

class TestApiUrl:

    def test_test_projects_use_test_environment(self):
        assert api_url_for_project("project-test-123") == TEST_API_URL

    def test_other_projects_use_live_environment(self):
        assert api_url_for_project("project-live-123") == LIVE_API_URL
        assert api_url_for_project("") == LIVE_API_URL


class TestStytchClient:

    @patch("rantboard.auth_provider.requests.post")
    def test_send_magic_link(self, mock_post):
        mock_post.return_value = _mock_response(200, {"status_code": 200})

        _client().send_magic_link("alice@example.com", "http://localhost:8080/authenticate")

        args, kwargs = mock_post.call_args
        assert args[0] == f"{TEST_API_URL}/magic_links/email/login_or_create"
        assert kwargs["json"]["email"] == "alice@example.com"
        assert kwargs["json"]["login_magic_link_url"] == "http://localhost:8080/authenticate"
        assert kwargs["json"]["signup_magic_link_url"] == "http://localhost:8080/authenticate"
        assert kwargs["auth"] == ("project-test-123", "secret-xyz")
        assert kwargs["timeout"] == 3

    @patch("rantboard.auth_provider.requests.post")
    def test_authenticate_magic_link(self, mock_post):
        mock_post.return_value = _mock_response(200, {
            "user_id": "user-test-1", "session_token": "sess-1",
        })

        user_id, session_token = _client().authenticate_magic_link("ml-token")

        assert (user_id, session_token) == ("user-test-1", "sess-1")
        payload = mock_post.call_args.kwargs["json"]
        assert payload == {"token": "ml-token", "session_duration_minutes": 30}

    @patch("rantboard.auth_provider.requests.post")
    def test_authenticate_magic_link_missing_session(self, mock_post):
        mock_post.return_value = _mock_response(200, {"user_id": "user-test-1"})
        with pytest.raises(IdentityProviderError):
            _client().authenticate_magic_link("ml-token")

    @patch("rantboard.auth_provider.requests.post")
    def test_authenticate_session_reads_nested_user(self, mock_post):
        mock_post.return_value = _mock_response(200, {"session": {"user_id": "user-test-2"}})
        assert _client().authenticate_session("sess") == "user-test-2"
        assert mock_post.call_args.args[0] == f"{TEST_API_URL}/sessions/authenticate"

    @patch("rantboard.auth_provider.requests.post")
    def test_rejection_carries_status(self, mock_post):
        mock_post.return_value = _mock_response(404, {"error_type": "session_not_found"})
        with pytest.raises(IdentityProviderError) as exc:
            _client().authenticate_session("sess")
        assert exc.value.status_code == 404
        assert "session_not_found" in str(exc.value)

    @pytest.mark.parametrize("status,payload", [
        (200, ["unexpected", "list"]),
        (200, "just a string"),
        (502, ["gateway", "junk"]),
    ])
    @patch("rantboard.auth_provider.requests.post")
    def test_non_object_body_becomes_provider_error(self, mock_post, status, payload):
        mock_post.return_value = _mock_response(status, payload)
        with pytest.raises(IdentityProviderError) as exc:
            _client().authenticate_session("sess")
        assert exc.value.status_code == (status if status >= 400 else None)

    @pytest.mark.parametrize("payload", [
        ["unexpected", "list"],
        {"session": "not-an-object"},
        {"session": ["user-test-2"]},
    ])
    @patch("rantboard.auth_provider.requests.post")
    def test_malformed_session_response_resolves_to_anonymous(self, mock_post, payload):
        mock_post.return_value = _mock_response(200, payload)
        assert resolve_identity("sess", _client()) == Identity.anonymous()

    @patch("rantboard.auth_provider.requests.post")
    def test_timeout_becomes_provider_error(self, mock_post):
        mock_post.side_effect = requests.Timeout("read timed out")
        with pytest.raises(IdentityProviderError) as exc:
            _client().authenticate_session("sess")
        assert exc.value.status_code is None

    @patch("rantboard.auth_provider.requests.post")
    def test_unreachable_provider_resolves_to_anonymous(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")
        assert resolve_identity("sess", _client()) == Identity.anonymous()

    @patch("rantboard.auth_provider.requests.post")
    def test_revoke_session(self, mock_post):
        mock_post.return_value = _mock_response(200, {})
        _client().revoke_session("sess")
        assert mock_post.call_args.args[0] == f"{TEST_API_URL}/sessions/revoke"
        assert mock_post.call_args.kwargs["json"] == {"session_token": "sess"}


class TestGetIdentityProvider:

    def test_built_from_environment(self, monkeypatch):
        monkeypatch.setenv("STYTCH_PROJECT_ID", "project-live-999")
        monkeypatch.setenv("STYTCH_SECRET", "shh")

        client = get_identity_provider()

        assert client.project_id == "project-live-999"
        assert client.secret == "shh"
        assert client.base_url == LIVE_API_URL
        assert client.timeout == 10
        assert get_identity_provider() is client
