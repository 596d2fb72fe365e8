"""
Tests for the access gate and the response router decision table.

Uses a tiny FastAPI app so each policy and outcome is exercised through a
real request cycle.
"""
from unittest.mock import patch, MagicMock

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from rantboard.errors import (
    AuthenticationRequiredError,
    BoardError,
    ConflictError,
    ForbiddenError,
    IdentityProviderError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from rantboard.identity import Identity
from rantboard_web.gate import AccessGate, GatePolicy, current_identity, hard_gate, soft_gate
from rantboard_web.responses import (
    Outcome,
    OutcomeKind,
    Views,
    login_url,
    router,
    run_operation,
)
from rantboard_web.server import board_error_handler

PARTIAL = {"HX-Request": "true"}

VIEWS = Views(
    page="error.html",
    fragment="partials/error.html",
    error_fragment="partials/new_post_error.html",
)


def _provider():
    provider = MagicMock()
    users = {"tok-alice": "alice"}

    def authenticate_session(token):
        if token in users:
            return users[token]
        raise IdentityProviderError("session_not_found", status_code=404)

    provider.authenticate_session.side_effect = authenticate_session
    return provider


@pytest.fixture
def app():
    app = FastAPI()
    app.add_exception_handler(BoardError, board_error_handler)

    @app.get("/soft")
    def soft(request: Request, identity: Identity = Depends(soft_gate())):
        return {"user": identity.user_id, "same": current_identity(request) is identity}

    @app.get("/hard")
    def hard(request: Request, identity: Identity = Depends(hard_gate("settings"))):
        return {"user": identity.user_id}

    @app.get("/outcome/{kind}")
    def outcome(request: Request, kind: str, identity: Identity = Depends(soft_gate())):
        errors = {
            "validation": ValidationError("Bad slug.", slug="x y"),
            "conflict": ConflictError("Taken."),
            "forbidden": ForbiddenError("Comment 7 belongs to alice"),
            "not_found": NotFoundError("Post 'nope' doesn't exist."),
            "auth_required": AuthenticationRequiredError("comment"),
            "storage": StorageError(),
        }
        if kind == "redirect":
            return router.respond(request, Outcome.success(redirect_to="/posts/x"), VIEWS)
        if kind == "success":
            return router.respond(request, Outcome.success(message="All good"), VIEWS)
        return router.respond(request, Outcome.failure(errors[kind]), VIEWS)

    @app.get("/ungated")
    def ungated(request: Request):
        return {"user": current_identity(request).user_id}

    return app


@pytest.fixture
def client(app):
    with patch("rantboard_web.gate.get_identity_provider", return_value=_provider()):
        yield TestClient(app)


# ── Gate ─────────────────────────────────────────────────────────────

class TestAccessGate:

    def test_soft_gate_lets_anonymous_through(self, client):
        resp = client.get("/soft")
        assert resp.status_code == 200
        assert resp.json() == {"user": "", "same": True}

    def test_soft_gate_resolves_user(self, client):
        client.cookies.set("stytch_session", "tok-alice")
        assert client.get("/soft").json()["user"] == "alice"

    def test_soft_gate_invalid_token_is_anonymous(self, client):
        client.cookies.set("stytch_session", "tok-forged")
        resp = client.get("/soft")
        assert resp.status_code == 200
        assert resp.json()["user"] == ""

    def test_hard_gate_redirects_anonymous_to_login(self, client):
        resp = client.get("/hard", follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/login?r=settings"

    def test_hard_gate_partial_gets_login_prompt(self, client):
        resp = client.get("/hard", headers=PARTIAL)
        assert resp.status_code == 200
        assert 'id="login-prompt"' in resp.text
        assert "You need to login to manage your settings" in resp.text
        assert "site-nav" not in resp.text

    def test_hard_gate_passes_authenticated(self, client):
        client.cookies.set("stytch_session", "tok-alice")
        resp = client.get("/hard")
        assert resp.status_code == 200
        assert resp.json() == {"user": "alice"}

    def test_hard_gate_refuses_identity_without_user(self, client):
        client.cookies.set("stytch_session", "tok-alice")
        with patch("rantboard_web.gate.resolve_identity",
                   return_value=Identity(user_id="", authenticated=True)):
            resp = client.get("/hard", follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/login?r=settings"

    def test_missing_gate_is_programming_error(self, client):
        with pytest.raises(RuntimeError):
            client.get("/ungated")

    def test_policy_is_data(self):
        assert AccessGate(GatePolicy.HARD, "new").policy is GatePolicy.HARD
        assert soft_gate().policy is GatePolicy.SOFT
        assert hard_gate("new").reason == "new"


# ── Response router ──────────────────────────────────────────────────

class TestRunOperation:

    def test_success(self):
        outcome = run_operation(lambda a, b: a + b, 1, 2)
        assert outcome.ok
        assert outcome.value == 3

    def test_board_error_becomes_failure(self):
        def boom():
            raise ConflictError("Taken.", slug="x")
        outcome = run_operation(boom)
        assert outcome.kind is OutcomeKind.CONFLICT
        assert outcome.error.details == {"slug": "x"}

    def test_other_errors_propagate(self):
        def boom():
            raise KeyError("bug")
        with pytest.raises(KeyError):
            run_operation(boom)


class TestResponseRouter:

    def test_success_redirect_full(self, client):
        resp = client.get("/outcome/redirect", follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/posts/x"

    def test_success_redirect_partial(self, client):
        resp = client.get("/outcome/redirect", headers=PARTIAL)
        assert resp.status_code == 200
        assert resp.headers["HX-Redirect"] == "/posts/x"

    def test_success_page_vs_fragment(self, client):
        page = client.get("/outcome/success")
        assert page.status_code == 200
        assert "site-nav" in page.text

        fragment = client.get("/outcome/success", headers=PARTIAL)
        assert fragment.status_code == 200
        assert 'id="inline-error"' in fragment.text
        assert "site-nav" not in fragment.text

    def test_validation_full_page(self, client):
        resp = client.get("/outcome/validation")
        assert resp.status_code == 400
        assert "site-nav" in resp.text

    def test_validation_partial_fragment(self, client):
        resp = client.get("/outcome/validation", headers=PARTIAL)
        assert resp.status_code == 200
        assert 'id="new-post-error"' in resp.text
        assert "Bad slug." in resp.text
        assert "site-nav" not in resp.text

    def test_conflict_full_page(self, client):
        assert client.get("/outcome/conflict").status_code == 409

    def test_auth_required(self, client):
        full = client.get("/outcome/auth_required", follow_redirects=False)
        assert full.status_code == 303
        assert full.headers["location"] == login_url("comment") == "/login?r=comment"

        partial = client.get("/outcome/auth_required", headers=PARTIAL)
        assert 'id="login-prompt"' in partial.text
        assert "You need to login before you can comment" in partial.text

    def test_not_found(self, client):
        full = client.get("/outcome/not_found")
        assert full.status_code == 404
        assert "Post &#39;nope&#39; doesn&#39;t exist." in full.text

        partial = client.get("/outcome/not_found", headers=PARTIAL)
        assert 'id="inline-error"' in partial.text

    def test_forbidden_is_generic(self, client):
        full = client.get("/outcome/forbidden")
        assert full.status_code == 403
        assert "You are not allowed to do that." in full.text
        assert "belongs to alice" not in full.text

        partial = client.get("/outcome/forbidden", headers=PARTIAL)
        assert "belongs to alice" not in partial.text

    def test_storage(self, client):
        full = client.get("/outcome/storage", follow_redirects=False)
        assert full.status_code == 303
        assert full.headers["location"] == "/error"

        partial = client.get("/outcome/storage", headers=PARTIAL)
        assert partial.status_code == 200
        assert "Oops, something went wrong." in partial.text
