"""
Client for the hosted magic-link identity provider (Stytch).

Only the four calls the board needs are wrapped. Everything about how the
provider verifies tokens is opaque to us: we hand it a token and get back a
user id, or an IdentityProviderError.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import requests

from rantboard.config import (
    get_identity_timeout,
    get_session_duration_minutes,
    get_stytch_credentials,
)
from rantboard.errors import IdentityProviderError

logger = logging.getLogger(__name__)

TEST_API_URL = "https://test.stytch.com/v1"
LIVE_API_URL = "https://api.stytch.com/v1"


def api_url_for_project(project_id: str) -> str:
    """Test projects talk to the test environment, everything else to live."""
    if project_id and project_id.startswith("project-test-"):
        return TEST_API_URL
    return LIVE_API_URL


class StytchClient:
    """Thin requests-based wrapper around the Stytch magic link and session APIs."""

    def __init__(
        self,
        project_id: str,
        secret: str,
        timeout: float = 10,
        session_duration_minutes: int = 60,
        base_url: Optional[str] = None,
    ):
        self.project_id = project_id
        self.secret = secret
        self.timeout = timeout
        self.session_duration_minutes = session_duration_minutes
        self.base_url = (base_url or api_url_for_project(project_id)).rstrip("/")

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            response = requests.post(
                url,
                json=payload,
                auth=(self.project_id, self.secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e

        data: Dict[str, Any] = {}
        try:
            data = response.json()
        except ValueError:
            pass

        if not isinstance(data, dict):
            raise IdentityProviderError(
                f"Identity provider sent a malformed {path} response",
                status_code=response.status_code if response.status_code >= 400 else None,
            )

        if response.status_code >= 400:
            error_type = data.get("error_type") or f"HTTP {response.status_code}"
            raise IdentityProviderError(
                f"Identity provider rejected {path}: {error_type}",
                status_code=response.status_code,
            )
        return data

    def send_magic_link(self, email: str, redirect_url: str) -> None:
        """Email a login (or signup) link that lands on redirect_url."""
        self._post("magic_links/email/login_or_create", {
            "email": email,
            "login_magic_link_url": redirect_url,
            "signup_magic_link_url": redirect_url,
        })

    def authenticate_magic_link(self, token: str) -> Tuple[str, str]:
        """
        Exchange a magic link token for a session.

        Returns:
            (user_id, session_token)
        """
        data = self._post("magic_links/authenticate", {
            "token": token,
            "session_duration_minutes": self.session_duration_minutes,
        })
        user_id = data.get("user_id")
        session_token = data.get("session_token")
        if not user_id or not session_token:
            raise IdentityProviderError("Magic link response missing user_id or session_token")
        return user_id, session_token

    def authenticate_session(self, session_token: str) -> str:
        """Verify a session token and return the user id it belongs to."""
        data = self._post("sessions/authenticate", {"session_token": session_token})
        session = data.get("session")
        if not isinstance(session, dict):
            session = {}
        user_id = session.get("user_id") or data.get("user_id")
        if not user_id:
            raise IdentityProviderError("Session response missing user_id")
        return user_id

    def revoke_session(self, session_token: str) -> None:
        self._post("sessions/revoke", {"session_token": session_token})


_client: Optional[StytchClient] = None


def get_identity_provider() -> StytchClient:
    """Get the process-wide provider client, built from configuration."""
    global _client
    if _client is None:
        project_id, secret = get_stytch_credentials()
        if not project_id or not secret:
            logger.warning("STYTCH_PROJECT_ID / STYTCH_SECRET not configured; logins will fail")
        _client = StytchClient(
            project_id or "",
            secret or "",
            timeout=get_identity_timeout(),
            session_duration_minutes=get_session_duration_minutes(),
        )
    return _client


def reset_identity_provider() -> None:
    """Drop the cached client (for testing or after config changes)."""
    global _client
    _client = None
