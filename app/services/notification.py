import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core import database
from app.core.config import settings
from app.models.notification import Notification
from app.models.user import User
from app.services.events import EventDispatcher, PostFlagged, StoredFileReleased
from app.services.policy import Role
from app.utils.file_upload import release_stored_file
from app.utils.tg_service import TelegramService

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def notify_role(
        self,
        role: Role,
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None,
    ) -> int:
        """Write one inbox row per user holding ``role``. Returns the row count."""
        recipients = self.db.query(User.id).filter(User.role == role.value).all()
        for (recipient_id,) in recipients:
            self.db.add(
                Notification(
                    recipient_id=recipient_id,
                    title=title,
                    message=message,
                    type=type,
                    link=link,
                )
            )
        self.db.commit()
        return len(recipients)

    def list_for_user(
        self, user_id: int, skip: int = 0, limit: int = 20, unread_only: bool = False
    ) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.recipient_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        notification = (
            self.db.query(Notification)
            .filter(
                Notification.id == notification_id,
                Notification.recipient_id == user_id,
            )
            .first()
        )
        if not notification:
            return None
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification


# ==================== Event handlers ====================


def notify_presidents_of_flag(event: PostFlagged) -> None:
    db = database.SessionLocal()
    try:
        count = NotificationService(db).notify_role(
            Role.PRESIDENT,
            title="Voice flagged for review",
            message=(
                f'"{event.post_title}" received {event.report_count} reports '
                "and was hidden pending review."
            ),
            type="post_flagged",
            link=f"/admin/posts/{event.post_id}/reports",
        )
        logger.info(f"Notified {count} president(s) about post {event.post_id}")
    finally:
        db.close()


async def alert_admin_chat_of_flag(event: PostFlagged) -> None:
    if not settings.telegram_notification_enabled or not settings.telegram_bot_token:
        return
    service = TelegramService(
        settings.telegram_bot_token, settings.telegram_admin_chat_id
    )
    await service.send_flag_alert(
        event.post_id,
        event.post_title,
        event.report_count,
        link=f"/admin/posts/{event.post_id}/reports",
    )


def register_handlers(dispatcher: EventDispatcher) -> EventDispatcher:
    dispatcher.subscribe(PostFlagged, notify_presidents_of_flag)
    dispatcher.subscribe(PostFlagged, alert_admin_chat_of_flag)
    dispatcher.subscribe(StoredFileReleased, release_stored_file)
    return dispatcher
