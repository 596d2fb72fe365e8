"""
Post and comment routes.

Comment actions sit behind the soft gate so an anonymous visitor gets the
login prompt rendered in place instead of a redirect away from the thread.
"""
from typing import Any, Dict

from fastapi import Depends, Form, Request

from rantboard.errors import NotFoundError
from rantboard.identity import Identity
from rantboard.models import VALID_MOODS
from rantboard.services import comment_service, post_service
from rantboard_web.gate import hard_gate, soft_gate
from rantboard_web.responses import Outcome, Views, router, run_operation


def _thread_loader(slug: str, identity: Identity, scope: str = ""):
    """View state shared by every rendering of a post page or its fragments."""
    def load() -> Dict[str, Any]:
        post, comments = post_service.get_post_with_comments(slug, identity.user_id)
        return {
            "slug": slug, "post": post, "comments": comments,
            "moods": VALID_MOODS, "error_scope": scope,
        }
    return load


def _thread_views(slug: str, identity: Identity, scope: str) -> Views:
    fragment = f"partials/{scope}.html"
    return Views(
        page="post.html",
        page_redirect=f"/posts/{slug}",
        fragment=fragment,
        error_fragment=fragment,
        auth_fragment=fragment,
        context_loader=_thread_loader(slug, identity, scope),
    )


def register_post_routes(app):
    """Register post and comment routes."""

    def _posts_loader():
        return {"posts": post_service.list_posts()}

    @app.get("/posts")
    def find_post(request: Request, identity: Identity = Depends(soft_gate())):
        """Jump to an existing post by name."""
        slug = (request.query_params.get("post-id") or "").strip()
        if slug and post_service.post_exists(slug):
            return router.respond(request, Outcome.success(redirect_to=f"/posts/{slug}"), Views())
        return router.respond(
            request,
            Outcome.failure(NotFoundError(f"Post '{slug}' doesn't exist.")),
            Views(),
        )

    @app.post("/posts")
    def create_post(
        request: Request,
        post_id: str = Form("", alias="post-id"),
        identity: Identity = Depends(hard_gate("new")),
    ):
        outcome = run_operation(post_service.create_post, post_id, identity.user_id)
        if outcome.ok:
            outcome.redirect_to = f"/posts/{outcome.value['id']}"
        return router.respond(request, outcome, Views(
            page="index.html",
            error_fragment="partials/new_post_error.html",
            context_loader=_posts_loader,
        ))

    @app.get("/posts/{slug}")
    def view_post(request: Request, slug: str, identity: Identity = Depends(soft_gate())):
        return router.respond(request, Outcome.success(), Views(
            page="post.html",
            fragment="partials/comments.html",
            context_loader=_thread_loader(slug, identity),
        ))

    @app.get("/posts/{slug}/new")
    def new_comment_form(slug: str):
        return router.respond_redirect(f"/posts/{slug}")

    @app.post("/posts/{slug}/new")
    def new_comment(
        request: Request,
        slug: str,
        message: str = Form(""),
        identity: Identity = Depends(soft_gate()),
    ):
        outcome = run_operation(comment_service.insert_comment, slug, identity.user_id, message)
        if outcome.ok:
            outcome.context["new_comment_id"] = outcome.value
        return router.respond(request, outcome, _thread_views(slug, identity, "comments"))

    @app.post("/posts/{slug}/mood/edit/{mood}")
    def edit_mood(request: Request, slug: str, mood: str, identity: Identity = Depends(soft_gate())):
        outcome = run_operation(post_service.edit_mood, slug, mood, identity.user_id)
        return router.respond(request, outcome, _thread_views(slug, identity, "mood"))

    @app.post("/posts/{slug}/comment/{comment_id}/upvote")
    def upvote_comment(
        request: Request,
        slug: str,
        comment_id: str,
        identity: Identity = Depends(soft_gate()),
    ):
        outcome = run_operation(comment_service.upvote, comment_id, identity.user_id, post_id=slug)
        outcome.context["voted_id"] = comment_id
        return router.respond(request, outcome, _thread_views(slug, identity, "comments"))

    @app.post("/posts/{slug}/comment/{comment_id}/delete")
    def delete_comment(
        request: Request,
        slug: str,
        comment_id: str,
        identity: Identity = Depends(soft_gate()),
    ):
        outcome = run_operation(
            comment_service.delete_comment, comment_id, identity.user_id, post_id=slug
        )
        if outcome.ok:
            outcome.context["notice"] = "Comment deleted."
        return router.respond(request, outcome, _thread_views(slug, identity, "comments"))

    @app.post("/posts/{slug}/description/edit")
    def edit_description(
        request: Request,
        slug: str,
        description: str = Form("", alias="post-description-input"),
        identity: Identity = Depends(soft_gate()),
    ):
        outcome = run_operation(post_service.edit_description, slug, description, identity.user_id)
        return router.respond(request, outcome, _thread_views(slug, identity, "description"))
