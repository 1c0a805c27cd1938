"""
Forum models: category tree, posts, threaded replies and reactions.
"""

from sqlalchemy import (
    String, Text, Integer, Boolean, DateTime, ForeignKey, Uuid,
    UniqueConstraint, Index, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from grihome.database import Base
from datetime import datetime
from typing import Optional, TYPE_CHECKING
import enum
import uuid

if TYPE_CHECKING:
    from grihome.models.user import User


class ReactionType(str, enum.Enum):
    THANKS = "THANKS"
    LAUGH = "LAUGH"
    CONFUSED = "CONFUSED"
    SAD = "SAD"
    ANGRY = "ANGRY"
    LOVE = "LOVE"


class ForumCategory(Base):
    """
    Node in the category tree.
    Roots have no parent; city nodes sit under general-discussions and carry
    one child per property type.
    """

    __tablename__ = "forum_categories"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("forum_categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    property_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "icon": self.icon,
            "display_order": self.display_order,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "city": self.city,
            "state": self.state,
            "property_type": self.property_type,
        }


class ForumPost(Base):
    __tablename__ = "forum_posts"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(300), unique=True, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("forum_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    is_sticky: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reply_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_reply_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)

    author: Mapped["User"] = relationship("User", lazy="selectin")
    category: Mapped["ForumCategory"] = relationship("ForumCategory", lazy="selectin")

    __table_args__ = (
        Index("idx_forum_posts_category_order", "category_id", "is_sticky", "last_reply_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "title": self.title,
            "slug": self.slug,
            "content": self.content,
            "category": self.category.to_dict() if self.category else None,
            "author": self.author.to_public_dict() if self.author else None,
            "is_sticky": self.is_sticky,
            "is_locked": self.is_locked,
            "view_count": self.view_count,
            "reply_count": self.reply_count,
            "last_reply_at": self.last_reply_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class ForumReply(Base):
    __tablename__ = "forum_replies"

    content: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("forum_replies.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    author: Mapped["User"] = relationship("User", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "content": self.content,
            "post_id": str(self.post_id),
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "author": self.author.to_public_dict() if self.author else None,
            "created_at": self.created_at,
        }


class PostReaction(Base):
    __tablename__ = "post_reactions"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[ReactionType] = mapped_column(SQLEnum(ReactionType), nullable=False)

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", "type", name="uq_post_reaction"),
    )


class ReplyReaction(Base):
    __tablename__ = "reply_reactions"

    reply_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("forum_replies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[ReactionType] = mapped_column(SQLEnum(ReactionType), nullable=False)

    __table_args__ = (
        UniqueConstraint("reply_id", "user_id", "type", name="uq_reply_reaction"),
    )
