"""
Comment service: insert, list, upvote and delete comments on a post.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from rantboard.config import dedupe_upvotes, get_limit
from rantboard.errors import (
    AuthenticationRequiredError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from rantboard.models import Comment, CommentVote, Post, Settings
from rantboard.services.common import board_session

logger = logging.getLogger(__name__)

# Generated ids are positive 64-bit integers
MAX_COMMENT_ID = 2 ** 63 - 1


def _parse_comment_id(comment_id: Union[str, int]) -> int:
    """Comment ids are integers on disk and strings everywhere else."""
    try:
        cid = int(str(comment_id).strip())
    except (TypeError, ValueError):
        raise NotFoundError(f"Comment {comment_id} not found")
    if not 1 <= cid <= MAX_COMMENT_ID:
        raise NotFoundError(f"Comment {comment_id} not found")
    return cid


def _scoped(query, cid: int, post_id: Optional[str]):
    """Narrow a Comment query to one id and, when given, its post."""
    query = query.filter(Comment.id == cid)
    if post_id is not None:
        query = query.filter(Comment.post_id == post_id)
    return query


def validate_comment_content(content: str) -> str:
    """
    Check comment text against the length policy.

    Returns:
        The stripped content

    Raises:
        ValidationError carrying the submitted content
    """
    stripped = (content or "").strip()
    if not stripped:
        raise ValidationError("Your comment can't be empty.", content=content or "")

    max_length = get_limit("comment_max_length")
    if len(stripped) > max_length:
        raise ValidationError(
            f"Comments are limited to {max_length} characters (yours has {len(stripped)}).",
            content=content,
        )
    return stripped


def _comment_rows(session, post_id: str, viewer_id: str) -> List[Dict[str, Any]]:
    """Comments of a post in creation order, joined with author display names."""
    rows = (
        session.query(Comment, Settings.preferred_name)
        .outerjoin(Settings, Settings.user_id == Comment.author_id)
        .filter(Comment.post_id == post_id)
        .order_by(Comment.id.asc())
        .all()
    )
    return [c.to_dict(viewer_id=viewer_id, author_name=name) for c, name in rows]


def list_comments(post_id: str, viewer_id: str = "") -> List[Dict[str, Any]]:
    """
    Get the comments of a post.

    Args:
        post_id: Post slug
        viewer_id: Viewing user, used to flag the viewer's own comments

    Raises:
        NotFoundError if the post doesn't exist
    """
    with board_session() as session:
        if session.get(Post, post_id) is None:
            raise NotFoundError(f"Post '{post_id}' doesn't exist.")
        return _comment_rows(session, post_id, viewer_id)


def insert_comment(post_id: str, author_id: str, content: str) -> str:
    """
    Add a comment to a post.

    Args:
        post_id: Slug of an existing post
        author_id: Authenticated user writing the comment
        content: Comment text, 1..comment_max_length characters after stripping

    Returns:
        The generated comment id

    Raises:
        AuthenticationRequiredError if author_id is empty
        ValidationError for empty or over-length content
        NotFoundError if the post doesn't exist
    """
    if not author_id:
        raise AuthenticationRequiredError("comment")

    text = validate_comment_content(content)

    with board_session() as session:
        if session.get(Post, post_id) is None:
            raise NotFoundError(f"Post '{post_id}' doesn't exist.")

        comment = Comment(post_id=post_id, author_id=author_id, content=text, upvote_count=0)
        session.add(comment)
        session.commit()
        session.refresh(comment)

        logger.info("Comment %s added to post %s", comment.id, post_id)
        return str(comment.id)


def upvote(comment_id: Union[str, int], voter_id: str, post_id: Optional[str] = None) -> int:
    """
    Add one vote to a comment.

    Each call adds exactly one vote. When dedupe_upvotes is configured a
    repeat vote by the same voter is refused instead.

    Args:
        comment_id: Comment to vote on
        voter_id: Authenticated voter
        post_id: When given, the comment must belong to this post

    Returns:
        The comment's new upvote count

    Raises:
        AuthenticationRequiredError if voter_id is empty
        NotFoundError for an unknown comment or one on another post
        ConflictError for a repeat vote when deduplication is on
    """
    if not voter_id:
        raise AuthenticationRequiredError("comment")

    cid = _parse_comment_id(comment_id)

    with board_session() as session:
        if dedupe_upvotes():
            already = (
                session.query(CommentVote.id)
                .filter(CommentVote.comment_id == cid, CommentVote.voter_id == voter_id)
                .first()
            )
            if already is not None:
                raise ConflictError("You already upvoted this comment.")

        updated = _scoped(session.query(Comment), cid, post_id).update(
            {Comment.upvote_count: Comment.upvote_count + 1},
            synchronize_session=False,
        )
        if not updated:
            session.rollback()
            raise NotFoundError(f"Comment {comment_id} not found")

        session.add(CommentVote(comment_id=cid, voter_id=voter_id))
        session.flush()
        count = session.query(Comment.upvote_count).filter(Comment.id == cid).scalar()
        session.commit()
        return count


def delete_comment(
    comment_id: Union[str, int], requester_id: str, post_id: Optional[str] = None
) -> None:
    """
    Delete a comment. Only its author may do this.

    Raises:
        AuthenticationRequiredError if requester_id is empty
        ForbiddenError if requester_id is not the author
        NotFoundError for an unknown comment or one on another post
    """
    if not requester_id:
        raise AuthenticationRequiredError("comment")

    cid = _parse_comment_id(comment_id)

    with board_session() as session:
        deleted = (
            _scoped(session.query(Comment), cid, post_id)
            .filter(Comment.author_id == requester_id)
            .delete(synchronize_session=False)
        )
        if deleted:
            session.query(CommentVote).filter(CommentVote.comment_id == cid).delete(
                synchronize_session=False
            )
            session.commit()
            logger.info("Comment %s deleted by its author", cid)
            return

        exists = _scoped(session.query(Comment.id), cid, post_id).first()
        session.rollback()
        if exists is None:
            raise NotFoundError(f"Comment {comment_id} not found")
        logger.info("User %s refused deletion of comment %s", requester_id, cid)
        raise ForbiddenError("You can only delete your own comments.")
