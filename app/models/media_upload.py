# app/models/media_upload.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class MediaUpload(Base):
    """A stored voice image and the member who uploaded it."""

    __tablename__ = "media_uploads"

    id = Column(Integer, primary_key=True, index=True)
    path = Column(String(255), unique=True, index=True, nullable=False)
    owner_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<MediaUpload(path='{self.path}', owner_id={self.owner_id})>"
