"""
Post service: create, look up, list and edit posts.

A post's slug is its primary key and its URL segment, so slug validation
is the boundary that keeps both correct.
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from rantboard.config import enforce_post_ownership, get_limit
from rantboard.errors import (
    AuthenticationRequiredError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from rantboard.models import Comment, Post, DEFAULT_MOOD, VALID_MOODS, validate_mood
from rantboard.services.comment_service import _comment_rows
from rantboard.services.common import board_session

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


def validate_slug(slug: str) -> str:
    """
    Check a user-chosen slug.

    Returns:
        The stripped slug

    Raises:
        ValidationError carrying the submitted slug
    """
    candidate = (slug or "").strip()
    if not candidate:
        raise ValidationError("Give your post a name.", slug=slug or "")

    max_length = get_limit("slug_max_length")
    if len(candidate) > max_length:
        raise ValidationError(
            f"Post names are limited to {max_length} characters.", slug=slug
        )

    if not SLUG_PATTERN.match(candidate):
        raise ValidationError(
            "Post names may only contain letters, numbers, '-' and '_', "
            "and must start with a letter or number.",
            slug=slug,
        )
    return candidate


def _load_post(session, slug: str) -> Post:
    post = session.get(Post, slug) if slug else None
    if post is None:
        raise NotFoundError(f"Post '{slug}' doesn't exist.")
    return post


def _check_editor(post: Post, editor_id: str, reason: str) -> None:
    """Editing needs a login; ownership only when enforce_post_ownership is on."""
    if not editor_id:
        raise AuthenticationRequiredError(reason)
    if enforce_post_ownership() and post.owner_id != editor_id:
        raise ForbiddenError("Only the owner of this post can change it.")


def list_posts() -> List[Dict[str, Any]]:
    """
    Get all posts, newest first, with their comment counts.
    """
    with board_session() as session:
        counts = (
            session.query(Comment.post_id, func.count(Comment.id).label("comment_count"))
            .group_by(Comment.post_id)
            .subquery()
        )
        rows = (
            session.query(Post, func.coalesce(counts.c.comment_count, 0))
            .outerjoin(counts, counts.c.post_id == Post.id)
            .order_by(Post.created_at.desc(), Post.id.asc())
            .all()
        )
        return [{**post.to_dict(), "comment_count": count} for post, count in rows]


def post_exists(slug: str) -> bool:
    """Check whether a post with this slug exists."""
    if not slug:
        return False
    with board_session() as session:
        return session.query(Post.id).filter(Post.id == slug).first() is not None


def create_post(slug: str, owner_id: str) -> Dict[str, Any]:
    """
    Open a new post under a user-chosen slug.

    Args:
        slug: Unique, URL-safe post name
        owner_id: Authenticated user creating the post

    Returns:
        The new post as a dict

    Raises:
        AuthenticationRequiredError if owner_id is empty
        ValidationError for a malformed slug
        ConflictError if the slug is taken
    """
    if not owner_id:
        raise AuthenticationRequiredError("new")

    slug = validate_slug(slug)

    with board_session() as session:
        if session.get(Post, slug) is not None:
            raise ConflictError(f"A post named '{slug}' already exists.", slug=slug)

        post = Post(id=slug, owner_id=owner_id, description="", mood=DEFAULT_MOOD)
        session.add(post)
        try:
            session.commit()
        except IntegrityError:
            # Lost a race with a concurrent create of the same slug
            session.rollback()
            raise ConflictError(f"A post named '{slug}' already exists.", slug=slug)
        session.refresh(post)

        logger.info("Post %s created by %s", slug, owner_id)
        return post.to_dict(viewer_id=owner_id)


def get_post(slug: str, viewer_id: str = "") -> Dict[str, Any]:
    """Get a single post without its comments."""
    with board_session() as session:
        return _load_post(session, slug).to_dict(viewer_id=viewer_id)


def get_post_with_comments(slug: str, viewer_id: str = "") -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Get a post and its comment thread in creation order.

    Args:
        slug: Post slug
        viewer_id: Viewing user, used for the is_owner / is_author flags

    Returns:
        (post, comments)

    Raises:
        NotFoundError if the post doesn't exist
    """
    with board_session() as session:
        post = _load_post(session, slug)
        return post.to_dict(viewer_id=viewer_id), _comment_rows(session, slug, viewer_id)


def edit_mood(slug: str, new_mood: str, editor_id: str) -> Dict[str, Any]:
    """
    Change a post's mood tag.

    Raises:
        AuthenticationRequiredError if editor_id is empty
        NotFoundError for an unknown post
        ValidationError if new_mood is not one of VALID_MOODS
        ForbiddenError if ownership is enforced and editor_id isn't the owner
    """
    if not editor_id:
        raise AuthenticationRequiredError("mood")

    mood = (new_mood or "").strip().lower()

    with board_session() as session:
        post = _load_post(session, slug)
        _check_editor(post, editor_id, "mood")

        if not validate_mood(mood):
            raise ValidationError(
                f"Unknown mood '{new_mood}'. Must be one of: {', '.join(VALID_MOODS)}",
                mood=post.mood,
            )

        post.mood = mood
        session.commit()
        session.refresh(post)
        return post.to_dict(viewer_id=editor_id)


def edit_description(slug: str, description: str, editor_id: str) -> Dict[str, Any]:
    """
    Replace a post's description.

    Raises:
        AuthenticationRequiredError if editor_id is empty
        NotFoundError for an unknown post
        ValidationError if the description is too long
        ForbiddenError if ownership is enforced and editor_id isn't the owner
    """
    if not editor_id:
        raise AuthenticationRequiredError("description")

    text = (description or "").strip()
    max_length = get_limit("description_max_length")

    with board_session() as session:
        post = _load_post(session, slug)
        _check_editor(post, editor_id, "description")

        if len(text) > max_length:
            raise ValidationError(
                f"Descriptions are limited to {max_length} characters.",
                description=description,
            )

        post.description = text
        session.commit()
        session.refresh(post)
        return post.to_dict(viewer_id=editor_id)
