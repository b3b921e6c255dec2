# app/routers/voices.py
from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Query,
    Request,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.database import get_db
from app.core.decorator import action_response
from app.core.dependencies import get_current_user, get_optional_user
from app.core.limiter import limiter
from app.models.user import User
from app.schemas.post import (
    ImageUploadResponse,
    VoiceCreate,
    VoiceListResponse,
    VoiceResponse,
)
from app.schemas.report import ReportCreate
from app.services import events
from app.services.media import MediaService
from app.services.moderation import ModerationService
from app.services.reports import ReportService
from app.utils.file_upload import file_storage_service

router = APIRouter(
    prefix="/voices",
    tags=["Voices"],
    responses={404: {"description": "Not found"}},
)


# NOTE: /images must be declared before /{post_id}


@router.post(
    "/images",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a voice cover image",
)
async def upload_voice_image(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Store an image and return the path to send as `image_url` when submitting
    a voice. JPG, PNG, GIF and WEBP up to 5MB.
    """
    path = await file_storage_service.save_image(file, folder="voices")
    await run_in_threadpool(MediaService(db).register_upload, current_user, path)
    return ImageUploadResponse(image_url=path)


@router.post(
    "",
    response_model=VoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a voice",
)
def submit_voice(
    voice_data: VoiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Publish a voice.

    - **title**: 5 to 100 characters
    - **excerpt**: 10 to 300 characters
    - **category**: one of the configured categories
    - **content**: at least 50 characters
    """
    post = ModerationService(db).create_post(current_user, voice_data)
    return VoiceResponse.model_validate(post)


@router.get("", response_model=VoiceListResponse, summary="Public feed")
def list_voices(
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Voices visible to everyone. Hidden voices, voices under review and voices
    by timed-out or suspended members are left out.
    """
    posts, pagination = ModerationService(db).list_public_feed(
        category=category, page=page, size=size
    )
    return VoiceListResponse(
        voices=[VoiceResponse.model_validate(post) for post in posts],
        **pagination,
    )


@router.get("/categories", summary="Voice categories")
def list_categories():
    return {"categories": settings.voice_categories}


@router.get("/{post_id}", response_model=VoiceResponse)
def get_voice(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    post = ModerationService(db).get_public_post(post_id, viewer=current_user)
    return VoiceResponse.model_validate(post)


@router.delete("/{post_id}", summary="Delete a voice")
def delete_voice(
    post_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a voice. Allowed for its author and the president."""
    result = ModerationService(db).remove_post(current_user, post_id)
    events.schedule(background_tasks, result.events)
    return action_response(result)


@router.post("/{post_id}/report", summary="Report a voice")
@limiter.limit(settings.report_rate_limit)
def report_voice(
    request: Request,
    post_id: int,
    report_data: ReportCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Report a voice. Each member can report a voice once; once enough members
    have reported it the voice is hidden until the president reviews it.
    """
    result = ReportService(db).submit(current_user, post_id, report_data.as_text())
    events.schedule(background_tasks, result.events)
    return action_response(result, success_status=status.HTTP_201_CREATED)
