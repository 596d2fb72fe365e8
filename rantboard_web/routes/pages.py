"""
Front page, static informational pages and the development reset hook.
"""
import logging
from datetime import datetime, timezone

from fastapi import Depends, Request
from fastapi.responses import PlainTextResponse

from rantboard.config import is_dev_mode
from rantboard.database import reset_db
from rantboard.identity import Identity
from rantboard.services import post_service
from rantboard_web.gate import soft_gate
from rantboard_web.responses import Outcome, Views, router

logger = logging.getLogger(__name__)


def register_page_routes(app):
    """Register index, about, error and admin routes."""

    @app.get("/")
    def index(request: Request, identity: Identity = Depends(soft_gate())):
        return router.respond(request, Outcome.success(), Views(
            page="index.html",
            fragment="partials/post_list.html",
            context_loader=lambda: {"posts": post_service.list_posts()},
        ))

    @app.get("/about")
    def about(request: Request, identity: Identity = Depends(soft_gate())):
        return router.render(request, "about.html")

    @app.get("/error")
    def error_page(request: Request, identity: Identity = Depends(soft_gate())):
        return router.render(request, "error.html", {"message": "Oops, something went wrong."})

    @app.get("/admin/reset")
    def admin_reset(request: Request):
        if not is_dev_mode():
            logger.warning("Refused /admin/reset outside development mode")
            return PlainTextResponse("Not allowed!", status_code=403)

        try:
            reset_db()
        except Exception:
            logger.exception("Store reset failed")
            return PlainTextResponse("Reset failed, errored out", status_code=500)

        logger.warning("Store reset through /admin/reset")
        return router.render(request, "reset.html", {
            "reset_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        })
