"""
Response shaping: from an operation's outcome to a redirect, page or fragment.

Handlers only say what happened (an Outcome) and which templates belong to
them (Views). ResponseRouter owns the decision of what the browser gets:

| outcome            | full navigation                  | partial (HX-Request)           |
|--------------------|----------------------------------|--------------------------------|
| success + redirect | 303 redirect                     | HX-Redirect header             |
| success            | page (or page_redirect)          | fragment                       |
| validation/conflict| page with error (400/409)        | error_fragment with error      |
| auth_required      | redirect to /login?r=<reason>    | auth_fragment (login prompt)   |
| not_found          | not_found.html (404)             | partials/error.html            |
| forbidden          | error.html, generic (403)        | partials/error.html, generic   |
| storage            | redirect to /error               | partials/error.html, generic   |
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from rantboard.errors import BoardError, ForbiddenError, StorageError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

PARTIAL_HEADER = "HX-Request"
ERROR_FRAGMENT = "partials/error.html"
LOGIN_PROMPT_FRAGMENT = "partials/login_prompt.html"


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    AUTH_REQUIRED = "auth_required"
    STORAGE = "storage"


@dataclass
class Outcome:
    """What an operation produced: a value, or the error that stopped it."""
    kind: OutcomeKind
    value: Any = None
    error: Optional[BoardError] = None
    redirect_to: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, value: Any = None, redirect_to: Optional[str] = None, **context) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, value=value, redirect_to=redirect_to, context=context)

    @classmethod
    def failure(cls, error: BoardError, **context) -> "Outcome":
        try:
            kind = OutcomeKind(error.kind)
        except ValueError:
            kind = OutcomeKind.STORAGE
        return cls(kind, error=error, context=context)


def run_operation(fn: Callable[..., Any], *args, **kwargs) -> Outcome:
    """Call a board operation and capture its result or BoardError as an Outcome."""
    try:
        value = fn(*args, **kwargs)
    except BoardError as e:
        return Outcome.failure(e)
    return Outcome.success(value)


@dataclass
class Views:
    """
    Templates belonging to one handler.

    context_loader supplies the state every rendering of this handler needs
    (e.g. the comment thread); it runs only when a view template is rendered.
    """
    page: Optional[str] = None
    page_redirect: Optional[str] = None
    fragment: Optional[str] = None
    error_fragment: Optional[str] = None
    auth_fragment: str = LOGIN_PROMPT_FRAGMENT
    context_loader: Optional[Callable[[], Dict[str, Any]]] = None


def is_partial(request: Request) -> bool:
    """True when the request came from an in-page partial update (htmx)."""
    return bool(request.headers.get(PARTIAL_HEADER))


# Reason codes carried through /login?r=<reason>
LOGIN_REASONS = {
    "new": "You need to login before you can create a new post",
    "comment": "You need to login before you can comment",
    "mood": "You need to login before you can change the mood",
    "description": "You need to login before you can edit the description",
    "settings": "You need to login to manage your settings",
    "expired": "That login link is invalid or has expired",
}


def login_url(reason: str = "") -> str:
    return f"/login?{urlencode({'r': reason})}" if reason else "/login"


def login_message(reason: str = "") -> str:
    return LOGIN_REASONS.get(reason, "You need to login first")


class ResponseRouter:
    """Picks the rendering variant for an Outcome."""

    def __init__(self, template_engine: Jinja2Templates = templates):
        self.templates = template_engine

    def render(self, request: Request, name: str, context: Optional[Dict[str, Any]] = None,
               status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> Response:
        ctx = {"identity": getattr(request.state, "identity", None)}
        ctx.update(context or {})
        return self.templates.TemplateResponse(
            request, name, ctx, status_code=status_code, headers=headers
        )

    def respond(self, request: Request, outcome: Outcome, views: Views) -> Response:
        partial = is_partial(request)
        kind = outcome.kind

        if kind is OutcomeKind.SUCCESS and outcome.redirect_to:
            return self._redirect(outcome.redirect_to, partial)

        if kind is OutcomeKind.AUTH_REQUIRED:
            reason = getattr(outcome.error, "reason", "")
            if partial:
                outcome.context.setdefault("login_reason", reason)
                outcome.context.setdefault("login_message", login_message(reason))
                return self._render_view(request, views.auth_fragment, outcome, views)
            return RedirectResponse(login_url(reason), status_code=303)

        if kind is OutcomeKind.STORAGE:
            if partial:
                return self.render(request, ERROR_FRAGMENT, {"message": StorageError.default_message})
            return RedirectResponse("/error", status_code=303)

        if kind is OutcomeKind.NOT_FOUND:
            message = outcome.error.message if outcome.error else "Not found."
            if partial:
                return self.render(request, ERROR_FRAGMENT, {"message": message})
            return self.render(request, "not_found.html", {"message": message}, status_code=404)

        if kind is OutcomeKind.FORBIDDEN:
            # Never name the owner or confirm what the target is
            message = ForbiddenError.default_message
            if partial:
                return self.render(request, ERROR_FRAGMENT, {"message": message})
            return self.render(request, "error.html", {"message": message}, status_code=403)

        if outcome.ok:
            if partial:
                return self._render_view(request, views.fragment, outcome, views)
            if views.page_redirect:
                return RedirectResponse(views.page_redirect, status_code=303)
            return self._render_view(request, views.page, outcome, views)

        # validation / conflict
        status = 200 if partial else (409 if kind is OutcomeKind.CONFLICT else 400)
        template = views.error_fragment if partial else views.page
        return self._render_view(request, template, outcome, views, status_code=status)

    def respond_redirect(self, url: str) -> Response:
        return RedirectResponse(url, status_code=303)

    def _redirect(self, url: str, partial: bool) -> Response:
        if partial:
            return Response(status_code=200, headers={"HX-Redirect": url})
        return RedirectResponse(url, status_code=303)

    def _render_view(self, request: Request, template: Optional[str], outcome: Outcome,
                     views: Views, status_code: int = 200) -> Response:
        if template is None:
            raise RuntimeError(f"No template for {outcome.kind.value} on {request.url.path}")

        context: Dict[str, Any] = {}
        if views.context_loader is not None:
            try:
                context.update(views.context_loader())
            except BoardError as e:
                logger.info("Could not load view state for %s: %s", request.url.path, e)
                return self.respond(request, Outcome.failure(e), replace(views, context_loader=None))

        context.update(outcome.context)
        context["outcome"] = outcome.kind.value
        if outcome.error is not None:
            context["error"] = outcome.error.message
            context["submitted"] = outcome.error.details
        return self.render(request, template, context, status_code=status_code)


router = ResponseRouter()
