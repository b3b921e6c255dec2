# app/models/banned_email.py
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.core.database import Base


class BannedEmail(Base):
    """Permanent ban on an email address. Outlives the user row it came from."""

    __tablename__ = "banned_emails"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    reason = Column(Text, nullable=True)
    banned_by = Column(Integer, nullable=True)  # No FK: the ban survives the banner
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<BannedEmail(email='{self.email}')>"
