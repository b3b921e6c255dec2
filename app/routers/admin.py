# app/routers/admin.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.decorator import action_response
from app.core.dependencies import get_current_user, require_operation
from app.models.user import User
from app.schemas.post import (
    VisibilityUpdate,
    VoiceModerationListResponse,
    VoiceModerationResponse,
)
from app.schemas.report import PostReportsResponse, ReportResponse
from app.schemas.user import (
    ListUsersResponse,
    TimeoutRequest,
    UpdateRoleRequest,
    UserManagementResponse,
)
from app.services import account_status, events
from app.services.account import AccountService
from app.services.moderation import ModerationService
from app.services.policy import Operation
from app.services.reports import ReportService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={404: {"description": "Not found"}},
)

# Read endpoints are guarded here; mutations are re-authorized by the services,
# which load actor and target fresh and refuse the protected president.
require_president = require_operation(Operation.MANAGE_USERS)
require_moderator = require_operation(Operation.MODERATE_CONTENT)


def _moderation_rows(rows, pagination) -> VoiceModerationListResponse:
    voices = []
    for post, report_count in rows:
        voice = VoiceModerationResponse.model_validate(post)
        voice.report_count = report_count
        voices.append(voice)
    return VoiceModerationListResponse(voices=voices, **pagination)


# ==================== User Management ====================


@router.get("/users", response_model=ListUsersResponse)
def list_users(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Search by name or email"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_president),
):
    """All members with their role and effective standing."""
    users, pagination = AccountService(db).list_users(page=page, size=size, search=search)
    now = account_status.utcnow()
    return ListUsersResponse(
        users=[UserManagementResponse.from_user(user, now) for user in users],
        **pagination,
    )


@router.patch("/users/{user_id}/role")
def update_user_role(
    user_id: int,
    body: UpdateRoleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = AccountService(db).update_role(current_user, user_id, body.role)
    return action_response(result)


@router.post("/users/{user_id}/suspend")
def suspend_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = AccountService(db).suspend(current_user, user_id)
    return action_response(result)


@router.post("/users/{user_id}/timeout")
def timeout_user(
    user_id: int,
    body: TimeoutRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Block a member for `minutes`. They are restored automatically afterwards."""
    result = AccountService(db).timeout(current_user, user_id, body.minutes)
    return action_response(result)


@router.post("/users/{user_id}/restore")
def restore_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = AccountService(db).restore(current_user, user_id)
    return action_response(result)


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Permanently delete a member, ban their email and sign them out everywhere.
    Their voices and uploaded files are removed as well.
    """
    result = AccountService(db).permanently_delete(current_user, user_id)
    events.schedule(background_tasks, result.events)
    return action_response(result)


# ==================== Voice Moderation ====================


@router.get("/posts/flagged", response_model=VoiceModerationListResponse)
def list_flagged_posts(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_president),
):
    """Voices hidden by reports, waiting for review."""
    rows, pagination = ModerationService(db).list_flagged(current_user, page, size)
    return _moderation_rows(rows, pagination)


@router.get("/posts", response_model=VoiceModerationListResponse)
def list_all_posts(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    hidden: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_moderator),
):
    """Every voice, hidden ones included (media managers and the president)."""
    rows, pagination = ModerationService(db).list_all(
        current_user, page=page, size=size, hidden=hidden
    )
    return _moderation_rows(rows, pagination)


@router.get("/posts/{post_id}/reports", response_model=PostReportsResponse)
def list_post_reports(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_president),
):
    reports = ReportService(db).list_for_post(current_user, post_id)
    return PostReportsResponse(
        post_id=post_id,
        report_count=len(reports),
        reports=[ReportResponse.model_validate(report) for report in reports],
    )


@router.post("/posts/{post_id}/restore")
def restore_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Clear all reports on a voice and take it out of review."""
    result = ModerationService(db).restore_post(current_user, post_id)
    return action_response(result)


@router.patch("/posts/{post_id}/visibility")
def set_post_visibility(
    post_id: int,
    body: VisibilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = ModerationService(db).set_hidden(current_user, post_id, body.is_hidden)
    return action_response(result)
