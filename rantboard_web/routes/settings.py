"""
Per-user settings routes. Both sit behind the hard gate.
"""
from fastapi import Depends, Form, Request

from rantboard.identity import Identity
from rantboard.services import settings_service
from rantboard_web.gate import hard_gate
from rantboard_web.responses import Outcome, Views, router, run_operation


def register_settings_routes(app):
    """Register settings routes."""

    def _settings_loader(identity: Identity):
        return lambda: {"settings": settings_service.get_settings(identity.user_id)}

    @app.get("/settings")
    def settings_page(request: Request, identity: Identity = Depends(hard_gate("settings"))):
        first_login = request.query_params.get("r") == "firstlogin"
        return router.respond(request, Outcome.success(first_login=first_login), Views(
            page="settings.html",
            fragment="partials/settings_form.html",
            context_loader=_settings_loader(identity),
        ))

    @app.post("/settings/edit")
    def edit_settings(
        request: Request,
        preferred_name: str = Form("", alias="preferred-name"),
        contact_me: str = Form("", alias="contact-me"),
        identity: Identity = Depends(hard_gate("settings")),
    ):
        outcome = run_operation(
            settings_service.save_settings, identity.user_id, preferred_name, contact_me
        )
        if outcome.ok:
            outcome.context["saved"] = True
        return router.respond(request, outcome, Views(
            page="settings.html",
            page_redirect="/settings",
            fragment="partials/settings_form.html",
            error_fragment="partials/settings_form.html",
            context_loader=_settings_loader(identity),
        ))
