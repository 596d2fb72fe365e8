"""
Rantboard - a session-gated discussion board.

Users log in with a magic link, open posts under a slug of their choosing,
and talk in the comments.
"""

__version__ = "0.1.0"

from rantboard.models import Post, Comment, CommentVote, Settings
from rantboard.database import get_engine, get_session, init_db
from rantboard.identity import Identity

__all__ = [
    "__version__",
    "Post",
    "Comment",
    "CommentVote",
    "Settings",
    "Identity",
    "get_engine",
    "get_session",
    "init_db",
]
