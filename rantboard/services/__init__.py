"""
Services for Rantboard.

Each service encapsulates a logical unit of functionality.
"""

from rantboard.services.post_service import (
    list_posts,
    post_exists,
    create_post,
    get_post,
    get_post_with_comments,
    edit_mood,
    edit_description,
    validate_slug,
)
from rantboard.services.comment_service import (
    list_comments,
    insert_comment,
    upvote,
    delete_comment,
    validate_comment_content,
)
from rantboard.services.settings_service import (
    get_settings,
    has_settings,
    save_settings,
    validate_settings,
)

__all__ = [
    # Posts
    "list_posts",
    "post_exists",
    "create_post",
    "get_post",
    "get_post_with_comments",
    "edit_mood",
    "edit_description",
    "validate_slug",
    # Comments
    "list_comments",
    "insert_comment",
    "upvote",
    "delete_comment",
    "validate_comment_content",
    # Settings
    "get_settings",
    "has_settings",
    "save_settings",
    "validate_settings",
]
