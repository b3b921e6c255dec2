# app/models/report.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.core.database import Base


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        # One report per reporter per post; duplicates surface as IntegrityError
        UniqueConstraint("reporter_id", "post_id", name="uq_reports_reporter_post"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Foreign Keys
    post_id = Column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reporter_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Report Details
    reason = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<Report(id={self.id}, post_id={self.post_id}, reporter_id={self.reporter_id})>"
