import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.decorator import moderation_action
from app.core.errors import AlreadyReported, NotFound, Unauthenticated
from app.models.post import Post
from app.models.report import Report
from app.models.user import User
from app.schemas.common import ActionResult
from app.services import policy
from app.services.events import PostFlagged
from app.services.moderation import ModerationService

logger = logging.getLogger(__name__)


class ReportService:
    """Collects member reports and hands posts over to review at the threshold."""

    def __init__(self, db: Session):
        self.db = db

    @moderation_action
    def submit(self, reporter: User, post_id: int, reason: str) -> ActionResult:
        if reporter is None:
            raise Unauthenticated()

        post = self.db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise NotFound("Post not found.")

        self.db.add(Report(post_id=post.id, reporter_id=reporter.id, reason=reason))
        try:
            self.db.commit()
        except IntegrityError:
            # unique (reporter_id, post_id)
            self.db.rollback()
            raise AlreadyReported()

        # Counted after the insert commits; auto_flag is a no-op for posts
        # already under review.
        count = self.count_for_post(post.id)
        events = []
        if count >= settings.report_threshold:
            if ModerationService(self.db).auto_flag(post):
                events.append(PostFlagged(post.id, post.title, count))

        logger.info(f"Post {post.id} reported by {reporter.id} ({count} report(s))")
        return ActionResult.ok(
            "Report submitted. Thank you for keeping the community safe.",
            data={"post_id": post.id, "report_count": count},
            events=events,
        )

    def count_for_post(self, post_id: int) -> int:
        return self.db.query(Report).filter(Report.post_id == post_id).count()

    def list_for_post(self, actor: User, post_id: int) -> List[Report]:
        """Reports on one post, oldest first, for the president's review."""
        policy.require(actor, policy.Operation.MANAGE_USERS)
        if not self.db.query(Post.id).filter(Post.id == post_id).first():
            raise NotFound("Post not found.")
        return (
            self.db.query(Report)
            .options(selectinload(Report.reporter))
            .filter(Report.post_id == post_id)
            .order_by(Report.created_at.asc(), Report.id.asc())
            .all()
        )
