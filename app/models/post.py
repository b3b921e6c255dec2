# app/models/post.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.core.database import Base


class Post(Base):
    """A voice: a blog-style post written by a member."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)

    # Foreign Keys
    author_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Content
    title = Column(String(100), nullable=False)
    excerpt = Column(String(300), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    content = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)  # Storage path (e.g., 'voices/uuid.jpg')

    # Moderation state: normal, under_review (entered only through reports)
    moderation_state = Column(String(20), default="normal", nullable=False, index=True)

    # Editorial visibility, independent of moderation_state
    is_hidden = Column(Boolean, default=False, nullable=False, index=True)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self):
        return (
            f"<Post(id={self.id}, author_id={self.author_id}, "
            f"state='{self.moderation_state}', hidden={self.is_hidden})>"
        )
