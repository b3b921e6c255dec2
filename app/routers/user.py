from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.user import BlockNoticeResponse, ProfileUpdate, UserResponse
from app.services import account_status, events
from app.services.user import UserService
from app.utils.file_upload import file_storage_service

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)

block_notice_router = APIRouter(tags=["Users"])


@router.get("/me", response_model=UserResponse)
def get_current_user_profile(current_user: User = Depends(get_current_user)):
    """
    Retrieves the profile for the currently authenticated user.
    """
    return current_user


@router.patch("/me", response_model=UserResponse)
def update_current_user_profile(
    update: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update your own name and bio. Role and account standing cannot be set here.
    """
    return UserService(db).update_profile(current_user, update)


@router.post("/me/avatar", response_model=UserResponse)
async def upload_avatar(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    path = await file_storage_service.save_image(file, folder="avatars")
    user, released = await run_in_threadpool(
        UserService(db).replace_avatar, current_user, path
    )
    events.schedule(background_tasks, released)
    return user


@block_notice_router.get(settings.block_notice_path, response_model=BlockNoticeResponse)
def block_notice(current_user: User = Depends(get_current_user)):
    """
    Why the signed-in account is blocked. Members in good standing are
    redirected away from this page before reaching it.
    """
    status = account_status.effective_status(current_user)
    return BlockNoticeResponse(
        status=status.kind,
        timeout_until=getattr(status, "until", None),
        message=account_status.describe(status),
    )
