"""
Account standing enforcement.

Runs on every request: a signed-in user who is timed out or suspended is sent
to the block-notice page, and a user in good standing is sent away from it.
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from app.core import database
from app.core.config import settings
from app.core.dependencies import resolve_principal
from app.core.errors import DependencyFailure, Unauthenticated
from app.schemas.common import ActionResult
from app.services import account_status

logger = logging.getLogger(__name__)

# Paths a blocked user may still reach besides the block notice itself
BLOCKED_USER_PATHS = {"/auth/logout"}


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def _token_user_blocked(token: str) -> bool:
    """True when the token's user is currently blocked."""
    db = None
    try:
        db = database.SessionLocal()
        user = resolve_principal(token, db)
        return account_status.is_blocked(user)
    except SQLAlchemyError as e:
        logger.error(f"Could not load principal for standing check: {e}", exc_info=True)
        raise DependencyFailure()
    finally:
        if db is not None:
            db.close()


async def enforce_account_standing(request: Request, call_next):
    token = _bearer_token(request)
    if token is None:
        return await call_next(request)

    try:
        blocked = await run_in_threadpool(_token_user_blocked, token)
    except Unauthenticated:
        # Routes that need a principal answer 401 themselves
        return await call_next(request)
    except DependencyFailure as e:
        logger.error(f"Standing check unavailable for {request.url.path}")
        return JSONResponse(
            status_code=e.status_code,
            content=ActionResult.failed(e).model_dump(mode="json"),
        )

    path = request.url.path
    notice = settings.block_notice_path
    if blocked and path != notice and path not in BLOCKED_USER_PATHS:
        logger.info(f"Redirecting blocked user from {path} to {notice}")
        return RedirectResponse(url=notice, status_code=307)
    if not blocked and path == notice:
        return RedirectResponse(url="/", status_code=307)

    return await call_next(request)
