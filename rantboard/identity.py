"""
Per-request identity.

An Identity is resolved fresh for every request from its session cookie and
is never stored anywhere that outlives the request.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from rantboard.errors import AuthenticationRequiredError, IdentityProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authentication state of one request."""
    user_id: str = ""
    authenticated: bool = False

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls()

    @classmethod
    def for_user(cls, user_id: str) -> "Identity":
        return cls(user_id=user_id, authenticated=True)

    def require(self, reason: str = "") -> str:
        """Return the user id, or raise AuthenticationRequiredError."""
        if not self.authenticated or not self.user_id:
            raise AuthenticationRequiredError(reason)
        return self.user_id


def resolve_identity(session_token: Optional[str], provider) -> Identity:
    """
    Turn session evidence into an Identity.

    Never raises: a missing, invalid, or unverifiable token yields the
    anonymous identity and the gate decides what that means.

    Args:
        session_token: Value of the session cookie, if any
        provider: Object with authenticate_session(token) -> user_id

    Returns:
        Identity for the request
    """
    if not session_token:
        return Identity.anonymous()

    try:
        user_id = provider.authenticate_session(session_token)
    except IdentityProviderError as e:
        if e.status_code is not None and e.status_code < 500:
            logger.info("Session token rejected: %s", e)
        else:
            logger.warning("Identity provider unavailable, treating request as anonymous: %s", e)
        return Identity.anonymous()

    if not user_id:
        return Identity.anonymous()
    return Identity.for_user(user_id)
