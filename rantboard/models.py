"""
SQLAlchemy models for Rantboard.

Portable: works on SQLite (default) and PostgreSQL.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, DateTime,
    ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def _utcnow():
    """Return current UTC time as a naive datetime (SQLite doesn't store tz info)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Mood tags a post can carry
VALID_MOODS = ["neutral", "happy", "sad", "angry", "excited", "confused"]
DEFAULT_MOOD = "neutral"


class Post(Base):
    """
    A discussion thread. The slug is both primary key and URL segment.
    """
    __tablename__ = "posts"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    mood = Column(String(20), nullable=False, default=DEFAULT_MOOD)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, onupdate=_utcnow)

    comments = relationship(
        "Comment",
        back_populates="post",
        order_by="Comment.id",
    )

    def __repr__(self):
        return f"<Post(id='{self.id}', owner='{self.owner_id}', mood='{self.mood}')>"

    def to_dict(self, viewer_id: str = ""):
        """Serialize to dictionary. is_owner is relative to viewer_id."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "description": self.description or "",
            "mood": self.mood,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "is_owner": bool(viewer_id) and viewer_id == self.owner_id,
        }


class Comment(Base):
    """A comment on a post. Ids are generated; order of ids is creation order."""
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(
        String(64),
        ForeignKey("posts.id"),
        nullable=False,
        index=True,
    )
    author_id = Column(String(100), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    upvote_count = Column(Integer, nullable=False, default=0)

    post = relationship("Post", back_populates="comments")
    votes = relationship(
        "CommentVote",
        back_populates="comment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("upvote_count >= 0", name="check_upvote_count_non_negative"),
        Index("idx_comments_post_id_id", "post_id", "id"),
    )

    def __repr__(self):
        return f"<Comment(id={self.id}, post='{self.post_id}', votes={self.upvote_count})>"

    def to_dict(self, viewer_id: str = "", author_name: str = ""):
        """Serialize to dictionary. The id is exposed as a string."""
        return {
            "id": str(self.id),
            "post_id": self.post_id,
            "author_id": self.author_id,
            "author_name": author_name or "anonymous",
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "upvote_count": self.upvote_count or 0,
            "is_author": bool(viewer_id) and viewer_id == self.author_id,
        }


class CommentVote(Base):
    """One row per successful upvote call."""
    __tablename__ = "comment_votes"

    id = Column(Integer, primary_key=True)
    comment_id = Column(
        Integer,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    voter_id = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    comment = relationship("Comment", back_populates="votes")

    __table_args__ = (
        Index("idx_comment_votes_comment_voter", "comment_id", "voter_id"),
    )


class Settings(Base):
    """Per-user preferences, one row per user."""
    __tablename__ = "settings"

    user_id = Column(String(100), primary_key=True)
    preferred_name = Column(String(100), nullable=False, default="")
    contact_me = Column(String(255), nullable=False, default="")
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Settings(user='{self.user_id}', name='{self.preferred_name}')>"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "preferred_name": self.preferred_name or "",
            "contact_me": self.contact_me or "",
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def validate_mood(mood: str) -> bool:
    """Check if a mood tag is one of VALID_MOODS."""
    return mood in VALID_MOODS
