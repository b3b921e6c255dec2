# app/models/relations.py

from sqlalchemy.orm import relationship

# Import all relevant models
from .media_upload import MediaUpload
from .notification import Notification
from .post import Post
from .report import Report
from .user import User


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # 1. User to Posts (One-to-Many)
    User.posts = relationship(
        "Post",
        back_populates="author",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    Post.author = relationship("User", back_populates="posts")

    # 2. Post to Reports (One-to-Many)
    Post.reports = relationship(
        "Report",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Report.created_at",
    )
    Report.post = relationship("Post", back_populates="reports")

    # 3. User to Reports (One-to-Many) - as reporter
    User.reports = relationship(
        "Report",
        back_populates="reporter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        foreign_keys="Report.reporter_id",
    )
    Report.reporter = relationship(
        "User",
        back_populates="reports",
        foreign_keys="Report.reporter_id",
    )

    # 4. User to Notifications (One-to-Many)
    User.notifications = relationship(
        "Notification",
        back_populates="recipient",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    Notification.recipient = relationship("User", back_populates="notifications")

    # 5. User to uploaded voice images (One-to-Many)
    User.media_uploads = relationship(
        "MediaUpload",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    MediaUpload.owner = relationship("User", back_populates="media_uploads")
