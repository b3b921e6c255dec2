import logging
from functools import wraps

from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import DependencyFailure, ModerationError
from app.schemas.common import ActionResult

logger = logging.getLogger(__name__)


def moderation_action(func):
    """
    Run a service method and turn its outcome into an ``ActionResult``.

    Domain errors become typed failures. Store errors are rolled back,
    logged with full context and reported as a generic dependency failure.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except ModerationError as e:
            if getattr(self, "db", None) is not None:
                self.db.rollback()
            logger.warning(f"{func.__name__} denied: {e.code} ({e.message})")
            return ActionResult.failed(e)
        except SQLAlchemyError as e:
            if getattr(self, "db", None) is not None:
                self.db.rollback()
            logger.error(
                f"{func.__name__} failed with args={args} kwargs={kwargs}: {e}",
                exc_info=True,
            )
            return ActionResult.failed(DependencyFailure())

    return wrapper


def action_response(result: ActionResult, success_status: int = 200):
    """Map an ``ActionResult`` onto the HTTP response the routers return."""
    if result.success:
        return JSONResponse(
            status_code=success_status, content=result.model_dump(mode="json")
        )
    return JSONResponse(
        status_code=result.status_code, content=result.model_dump(mode="json")
    )
