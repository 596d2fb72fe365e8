"""
Login, magic link and logout routes.

The identity provider does the real work; these routes only move tokens
between it and the session cookie.
"""
import logging
import re

from fastapi import Depends, Form, Request

from rantboard.auth_provider import get_identity_provider
from rantboard.config import get_public_url, get_session_cookie_name, get_session_duration_minutes
from rantboard.errors import IdentityProviderError, ValidationError
from rantboard.identity import Identity
from rantboard.services import settings_service
from rantboard_web.gate import soft_gate
from rantboard_web.responses import Outcome, Views, login_message, login_url, router, run_operation

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def send_login_link(email: str) -> str:
    """Validate the address and ask the provider to mail a magic link."""
    address = (email or "").strip()
    if not EMAIL_PATTERN.match(address):
        raise ValidationError("Enter a valid email address.", email=email or "")

    try:
        get_identity_provider().send_magic_link(address, f"{get_public_url()}/authenticate")
    except IdentityProviderError as e:
        logger.warning("Sending magic link failed: %s", e)
        raise ValidationError(
            "We couldn't send a login link to that address. Please try again.", email=address
        )
    return address


def register_auth_routes(app):
    """Register login, authenticate and logout routes."""

    @app.get("/login")
    def login_page(request: Request, identity: Identity = Depends(soft_gate())):
        reason = request.query_params.get("r", "")
        context = {"email": ""}
        if reason:
            context.update(status="error", message=login_message(reason))
        return router.render(request, "login.html", context)

    @app.post("/login/sendlink")
    def send_link(request: Request, email: str = Form(""), identity: Identity = Depends(soft_gate())):
        outcome = run_operation(send_login_link, email)
        if outcome.ok:
            outcome.context["email"] = outcome.value
        return router.respond(request, outcome, Views(
            page="login.html",
            fragment="partials/login_sent.html",
            error_fragment="partials/login_form.html",
        ))

    @app.get("/authenticate")
    def authenticate(request: Request):
        token = request.query_params.get("token", "")
        if not token:
            return router.respond_redirect(login_url("expired"))

        try:
            user_id, session_token = get_identity_provider().authenticate_magic_link(token)
        except IdentityProviderError as e:
            logger.info("Magic link authentication failed: %s", e)
            return router.respond_redirect(login_url("expired"))

        first_login = run_operation(settings_service.has_settings, user_id)
        target = "/settings?r=firstlogin" if first_login.ok and not first_login.value else "/"

        response = router.respond_redirect(target)
        response.set_cookie(
            get_session_cookie_name(),
            session_token,
            max_age=get_session_duration_minutes() * 60,
            httponly=True,
            samesite="lax",
            secure=request.url.scheme == "https",
        )
        logger.info("User %s logged in", user_id)
        return response

    @app.get("/logout")
    def logout(request: Request):
        cookie_name = get_session_cookie_name()
        token = request.cookies.get(cookie_name)
        if token:
            try:
                get_identity_provider().revoke_session(token)
            except IdentityProviderError as e:
                logger.info("Session revoke failed, clearing cookie anyway: %s", e)

        request.state.identity = Identity.anonymous()
        response = router.render(request, "logged_out.html")
        response.delete_cookie(cookie_name)
        return response
