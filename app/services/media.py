import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import InvalidRequest
from app.models.media_upload import MediaUpload
from app.models.post import Post
from app.models.user import User

logger = logging.getLogger(__name__)


class MediaService:
    """Ownership of stored voice images."""

    def __init__(self, db: Session):
        self.db = db

    def register_upload(self, owner: User, path: str) -> MediaUpload:
        upload = MediaUpload(path=path, owner_id=owner.id)
        self.db.add(upload)
        self.db.commit()
        logger.info(f"User {owner.id} uploaded {path}")
        return upload

    def claim_for_post(self, author: User, path: Optional[str]) -> None:
        """
        Check that ``author`` may attach ``path`` to a new voice: the image
        must be their own upload and not already attached to another voice.
        """
        if not path:
            return

        upload = self.db.query(MediaUpload).filter(MediaUpload.path == path).first()
        if not upload or upload.owner_id != author.id:
            logger.warning(f"User {author.id} tried to attach foreign image {path}")
            raise InvalidRequest("Image not found. Upload it before submitting.")

        in_use = self.db.query(Post.id).filter(Post.image_url == path).first()
        if in_use:
            raise InvalidRequest("This image is already attached to another voice.")

    def releasable(self, paths: Iterable[str]) -> List[str]:
        """
        Paths nothing in the database points at any more. Call after the
        owning rows are deleted and committed.
        """
        free = []
        try:
            for path in dict.fromkeys(p for p in paths if p):
                used_by_post = (
                    self.db.query(Post.id).filter(Post.image_url == path).first()
                )
                used_as_avatar = (
                    self.db.query(User.id).filter(User.avatar_url == path).first()
                )
                if used_by_post or used_as_avatar:
                    logger.warning(f"Keeping {path}: still referenced")
                    continue
                free.append(path)
        except SQLAlchemyError as e:
            # Files stay on disk when their references cannot be read
            self.db.rollback()
            logger.error(f"Could not check stored file references: {e}", exc_info=True)
            return []
        return free

    def forget(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        if not paths:
            return
        try:
            self.db.query(MediaUpload).filter(MediaUpload.path.in_(paths)).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not drop upload records for {paths}: {e}")
