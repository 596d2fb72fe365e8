"""
Access gate for board routes.

One gate, two policies. Both resolve the request's Identity from its session
cookie and attach it to request.state; the HARD policy additionally refuses
anonymous requests by raising AuthenticationRequiredError, which the app's
exception handler turns into a login redirect (or a login-prompt fragment).

Usage:
    @app.get("/settings")
    def settings_page(request: Request, identity: Identity = Depends(hard_gate("settings"))):
        ...
"""

import logging
from enum import Enum

from fastapi import Request

from rantboard.auth_provider import get_identity_provider
from rantboard.config import get_session_cookie_name
from rantboard.errors import AuthenticationRequiredError
from rantboard.identity import Identity, resolve_identity

logger = logging.getLogger(__name__)


class GatePolicy(str, Enum):
    SOFT = "soft"
    HARD = "hard"


class AccessGate:
    """FastAPI dependency that resolves and, for HARD, enforces authentication."""

    def __init__(self, policy: GatePolicy, reason: str = ""):
        self.policy = policy
        self.reason = reason

    def __call__(self, request: Request) -> Identity:
        token = request.cookies.get(get_session_cookie_name())
        identity = resolve_identity(token, get_identity_provider())
        request.state.identity = identity

        if self.policy is GatePolicy.HARD:
            try:
                identity.require(self.reason)
            except AuthenticationRequiredError:
                logger.debug("Hard gate refused anonymous %s %s", request.method, request.url.path)
                raise
        return identity

    def __repr__(self):
        return f"<AccessGate({self.policy.value}, reason='{self.reason}')>"


def soft_gate() -> AccessGate:
    return AccessGate(GatePolicy.SOFT)


def hard_gate(reason: str = "") -> AccessGate:
    return AccessGate(GatePolicy.HARD, reason=reason)


def current_identity(request: Request) -> Identity:
    """
    The Identity resolved by the gate for this request.

    Calling this on a route that isn't behind a gate is a programming error.
    """
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, Identity):
        raise RuntimeError(f"No identity resolved for {request.url.path}; route is missing its access gate")
    return identity
