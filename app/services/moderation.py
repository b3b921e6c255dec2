import logging
import math
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session, selectinload

from app.core.decorator import moderation_action
from app.core.errors import AccountBlocked, NotFound, Unauthenticated, Unauthorized
from app.models.post import Post
from app.models.report import Report
from app.models.user import User
from app.schemas.common import ActionResult
from app.schemas.post import VoiceCreate
from app.services import account_status, policy
from app.services.events import StoredFileReleased
from app.services.media import MediaService

logger = logging.getLogger(__name__)

NORMAL = "normal"
UNDER_REVIEW = "under_review"


def _paginate(total: int, page: int, size: int) -> dict:
    return {
        "total": total,
        "page": page,
        "size": size,
        "total_pages": math.ceil(total / size) if size > 0 else 0,
    }


def author_blocked_clause(now: datetime):
    """SQL form of ``account_status.is_blocked`` for the author join."""
    return or_(
        User.timeout_until > now,
        and_(
            User.account_status == account_status.SUSPENDED_MARKER,
            User.timeout_until.is_(None),
        ),
    )


class ModerationService:
    """Voice lifecycle: submission, visibility and the under-review flag."""

    def __init__(self, db: Session):
        self.db = db

    def _get_post(self, post_id: int) -> Post:
        post = self.db.query(Post).filter(Post.id == post_id).first()
        if not post:
            raise NotFound("Post not found.")
        return post

    def _public_query(self, now: Optional[datetime] = None) -> Query:
        now = account_status.as_utc(now) or account_status.utcnow()
        return (
            self.db.query(Post)
            .join(User, Post.author_id == User.id)
            .options(selectinload(Post.author))
            .filter(
                Post.is_hidden == False,
                Post.moderation_state == NORMAL,
                ~author_blocked_clause(now),
            )
        )

    # ==================== Submission ====================

    def create_post(self, author: User, data: VoiceCreate) -> Post:
        """Publish a voice. Blocked members cannot submit."""
        if author is None:
            raise Unauthenticated()
        status = account_status.effective_status(author)
        if not isinstance(status, account_status.Normal):
            raise AccountBlocked(account_status.describe(status))
        MediaService(self.db).claim_for_post(author, data.image_url)

        post = Post(
            author_id=author.id,
            title=data.title,
            excerpt=data.excerpt,
            category=data.category,
            content=data.content,
            image_url=data.image_url,
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)

        logger.info(f"Voice {post.id} published by user {author.id}")
        return post

    # ==================== Transitions ====================

    def auto_flag(self, post: Post) -> bool:
        """
        Move ``post`` under review and hide it. Returns False when it was
        already under review. Commits.
        """
        if post.moderation_state == UNDER_REVIEW:
            return False
        post.moderation_state = UNDER_REVIEW
        post.is_hidden = True
        self.db.commit()
        logger.info(f"Post {post.id} auto-flagged for review")
        return True

    @moderation_action
    def restore_post(self, actor: User, post_id: int) -> ActionResult:
        policy.require(actor, policy.Operation.MANAGE_USERS)
        post = self._get_post(post_id)

        cleared = (
            self.db.query(Report)
            .filter(Report.post_id == post.id)
            .delete(synchronize_session=False)
        )
        post.moderation_state = NORMAL
        self.db.commit()

        logger.info(f"Post {post.id} restored by {actor.id}, {cleared} report(s) cleared")
        return ActionResult.ok(
            "Post restored and reports cleared.",
            data={"post_id": post.id, "reports_cleared": cleared},
        )

    @moderation_action
    def remove_post(self, actor: User, post_id: int) -> ActionResult:
        if actor is None:
            raise Unauthenticated()
        post = self._get_post(post_id)
        if not (policy.can_manage_users(actor) or post.author_id == actor.id):
            raise Unauthorized("Unauthorized.")

        image_url = post.image_url
        self.db.delete(post)
        self.db.commit()

        media = MediaService(self.db)
        released = media.releasable([image_url])
        media.forget(released)

        logger.info(f"Post {post_id} removed by {actor.id}")
        return ActionResult.ok(
            "Post deleted successfully.",
            data={"post_id": post_id},
            events=[StoredFileReleased(path) for path in released],
        )

    @moderation_action
    def set_hidden(self, actor: User, post_id: int, hidden: bool) -> ActionResult:
        policy.require(actor, policy.Operation.MODERATE_CONTENT)
        post = self._get_post(post_id)

        post.is_hidden = hidden
        self.db.commit()

        logger.info(f"Post {post.id} hidden={hidden} set by {actor.id}")
        return ActionResult.ok(
            "Post hidden." if hidden else "Post is visible again.",
            data={"post_id": post.id, "is_hidden": hidden},
        )

    # ==================== Queries ====================

    def list_public_feed(
        self,
        category: Optional[str] = None,
        page: int = 1,
        size: int = 20,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Post], dict]:
        query = self._public_query(now)
        if category:
            query = query.filter(Post.category == category)

        total = query.count()
        posts = (
            query.order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return posts, _paginate(total, page, size)

    def get_public_post(self, post_id: int, viewer: Optional[User] = None) -> Post:
        """
        A single voice. Hidden, under-review and blocked-author voices are only
        shown to their author and to moderators.
        """
        post = self._public_query().filter(Post.id == post_id).first()
        if post:
            return post

        post = self.db.query(Post).filter(Post.id == post_id).first()
        if post and viewer and (
            post.author_id == viewer.id or policy.can_moderate_content(viewer)
        ):
            return post
        raise NotFound("Post not found.")

    def _with_report_counts(self, query: Query, page: int, size: int):
        counts = (
            self.db.query(Report.post_id, func.count(Report.id).label("report_count"))
            .group_by(Report.post_id)
            .subquery()
        )
        total = query.count()
        rows = (
            query.outerjoin(counts, counts.c.post_id == Post.id)
            .add_columns(func.coalesce(counts.c.report_count, 0))
            .options(selectinload(Post.author))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return [(post, count) for post, count in rows], _paginate(total, page, size)

    def list_flagged(self, actor: User, page: int = 1, size: int = 20):
        """Voices waiting for the president's review, with their report counts."""
        policy.require(actor, policy.Operation.MANAGE_USERS)
        query = self.db.query(Post).filter(Post.moderation_state == UNDER_REVIEW)
        return self._with_report_counts(query, page, size)

    def list_all(
        self,
        actor: User,
        page: int = 1,
        size: int = 20,
        hidden: Optional[bool] = None,
    ):
        policy.require(actor, policy.Operation.MODERATE_CONTENT)
        query = self.db.query(Post)
        if hidden is not None:
            query = query.filter(Post.is_hidden == hidden)
        return self._with_report_counts(query, page, size)
