from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from app.core.config import settings
from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Authentication fields
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)

    # Profile information (editable by the user)
    full_name = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)  # Storage path, e.g. 'avatars/uuid.png'

    # member, media_manager, president
    role = Column(String(20), default="member", nullable=False, index=True)

    # Standing: 'normal' or 'suspended'. A future timeout_until means timed out;
    # read both through app.services.account_status, never the column alone.
    account_status = Column(String(20), default="normal", nullable=False)
    timeout_until = Column(DateTime(timezone=True), nullable=True)

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
    last_login = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_protected(self) -> bool:
        """True for the original president, whose record can never be changed."""
        return (self.email or "").strip().lower() == settings.protected_president_email

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
