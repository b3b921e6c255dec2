# app/services/user.py

from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.user import ProfileUpdate
from app.services.events import StoredFileReleased


class UserService:
    """A member's own profile. Role and account status are never written here."""

    def __init__(self, db: Session):
        self.db = db

    def update_profile(self, user: User, update: ProfileUpdate) -> User:
        """
        Update the editable profile fields of ``user``.
        Fields left out of the request are not touched.
        """
        for field, value in update.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(user, field, value.strip() if isinstance(value, str) else value)

        user.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(user)
        return user

    def replace_avatar(
        self, user: User, relative_path: str
    ) -> Tuple[User, List[StoredFileReleased]]:
        """
        Point ``user`` at a newly stored avatar.
        Returns the user and the release event for the previous file, if any.
        """
        previous = user.avatar_url
        user.avatar_url = relative_path
        user.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(user)

        events = [StoredFileReleased(previous)] if previous else []
        return user, events

