import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.decorator import moderation_action
from app.core.errors import InvalidRequest, NotFound
from app.core.security import token_blacklist
from app.models.banned_email import BannedEmail
from app.models.post import Post
from app.models.user import User
from app.schemas.common import ActionResult
from app.schemas.user import UserManagementResponse
from app.services import account_status, policy
from app.services.account_status import Normal, Suspended, TimedOut
from app.services.events import StoredFileReleased
from app.services.media import MediaService

logger = logging.getLogger(__name__)


class AccountService:
    """Account status transitions. Every transition is president-only and
    refuses the protected identity."""

    def __init__(self, db: Session):
        self.db = db

    def _load_target(self, target_id: int, lock: bool = False) -> User:
        query = self.db.query(User).filter(User.id == target_id)
        if lock:
            query = query.with_for_update()
        target = query.first()
        if not target:
            raise NotFound("User not found.")
        return target

    def _result(self, message: str, target: User, now: Optional[datetime] = None):
        return ActionResult.ok(
            message,
            data={
                "user": UserManagementResponse.from_user(target, now).model_dump(
                    mode="json"
                )
            },
        )

    @moderation_action
    def suspend(self, actor: User, target_id: int) -> ActionResult:
        target = self._load_target(target_id)
        policy.authorize_mutation(actor, target)

        account_status.apply(target, Suspended())
        self.db.commit()
        self.db.refresh(target)

        logger.info(f"User {target.id} suspended by {actor.id}")
        return self._result("User suspended.", target)

    @moderation_action
    def timeout(
        self,
        actor: User,
        target_id: int,
        minutes: int,
        now: Optional[datetime] = None,
    ) -> ActionResult:
        target = self._load_target(target_id)
        policy.authorize_mutation(actor, target)

        if minutes <= 0:
            raise InvalidRequest("Timeout must be at least one minute.")
        if minutes > settings.max_timeout_minutes:
            raise InvalidRequest(
                f"Timeout cannot exceed {settings.max_timeout_minutes} minutes."
            )

        now = account_status.as_utc(now) or account_status.utcnow()
        account_status.apply(target, TimedOut(now + timedelta(minutes=minutes)))
        self.db.commit()
        self.db.refresh(target)

        logger.info(f"User {target.id} timed out for {minutes} minutes by {actor.id}")
        return self._result(f"User masked for {minutes} minutes.", target, now)

    @moderation_action
    def restore(self, actor: User, target_id: int) -> ActionResult:
        target = self._load_target(target_id)
        policy.authorize_mutation(actor, target)

        account_status.apply(target, Normal())
        self.db.commit()
        self.db.refresh(target)

        logger.info(f"User {target.id} restored by {actor.id}")
        return self._result("User account restored.", target)

    @moderation_action
    def update_role(self, actor: User, target_id: int, role: str) -> ActionResult:
        target = self._load_target(target_id)
        policy.authorize_mutation(actor, target)

        try:
            new_role = policy.Role(role)
        except ValueError:
            raise InvalidRequest(f"Unknown role: {role}")

        target.role = new_role.value
        self.db.commit()
        self.db.refresh(target)

        logger.info(f"User {target.id} role set to {new_role.value} by {actor.id}")
        return self._result(f"User role updated to {new_role.value}.", target)

    @moderation_action
    def permanently_delete(self, actor: User, target_id: int) -> ActionResult:
        # Lock and re-read the target in the transaction that deletes it, so
        # the protection check always sees the row actually being removed.
        target = self._load_target(target_id, lock=True)
        policy.authorize_mutation(
            actor,
            target,
            protected_message="Action Denied: The Original President CANNOT be deleted.",
        )

        email = target.email
        released = [
            path
            for (path,) in self.db.query(Post.image_url)
            .filter(Post.author_id == target.id, Post.image_url.isnot(None))
            .all()
        ]
        if target.avatar_url:
            released.append(target.avatar_url)

        self.db.delete(target)
        self.db.commit()
        logger.info(f"User {target_id} ({email}) permanently deleted by {actor.id}")
        released = MediaService(self.db).releasable(released)

        self._ban_email(email, actor.id)

        if not token_blacklist.clear_user_tokens(target_id):
            logger.error(f"Could not revoke sessions of deleted user {target_id}")

        return ActionResult.ok(
            "User permanently deleted and email banned.",
            data={"user_id": target_id},
            events=[StoredFileReleased(path) for path in released],
        )

    def _ban_email(self, email: str, banned_by: int) -> None:
        """Best effort: the deletion stands even when the ban cannot be written."""
        try:
            exists = (
                self.db.query(BannedEmail.id).filter(BannedEmail.email == email).first()
            )
            if not exists:
                self.db.add(
                    BannedEmail(
                        email=email,
                        reason="Permanently Banned by Admin",
                        banned_by=banned_by,
                    )
                )
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"User with email {email} was deleted but the ban could not be recorded: {e}",
                exc_info=True,
            )

    # ==================== Queries ====================

    def list_users(
        self, page: int = 1, size: int = 20, search: Optional[str] = None
    ) -> Tuple[List[User], dict]:
        query = self.db.query(User)

        if search:
            query = query.filter(
                or_(
                    User.full_name.ilike(f"%{search}%"),
                    User.email.ilike(f"%{search}%"),
                )
            )

        total = query.count()
        offset = (page - 1) * size
        users = query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(size).all()

        pagination = {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": math.ceil(total / size) if size > 0 else 0,
        }
        return users, pagination
