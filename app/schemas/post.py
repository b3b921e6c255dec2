# app/schemas/post.py
import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import settings

# Paths issued by the voice image upload endpoint
VOICE_IMAGE_PATH = re.compile(
    r"^voices/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    r"\.(jpg|jpeg|png|gif|webp)$"
)

# ==================== Voice Schemas ====================


class VoiceCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    excerpt: str = Field(..., min_length=10, max_length=300)
    category: str
    content: str = Field(..., min_length=50)
    image_url: Optional[str] = Field(
        None, description="Path returned by the image upload endpoint"
    )

    @field_validator("title", "excerpt", "content", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        if value not in settings.voice_categories:
            raise ValueError(
                f"Category must be one of: {', '.join(settings.voice_categories)}"
            )
        return value

    @field_validator("image_url")
    @classmethod
    def validate_image_path(cls, value: Optional[str]) -> Optional[str]:
        if value and not VOICE_IMAGE_PATH.match(value):
            raise ValueError("Invalid image path")
        return value


class VoiceAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    avatar_url: Optional[str] = None


class VoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    excerpt: str
    category: str
    content: str
    image_url: Optional[str] = None
    created_at: datetime
    author: VoiceAuthor


class VoiceModerationResponse(VoiceResponse):
    """Voice as seen by moderators, including its moderation flags"""

    moderation_state: Literal["normal", "under_review"]
    is_hidden: bool
    report_count: int = 0


class VoiceListResponse(BaseModel):
    voices: List[VoiceResponse]
    total: int
    page: int
    size: int
    total_pages: int


class VoiceModerationListResponse(BaseModel):
    voices: List[VoiceModerationResponse]
    total: int
    page: int
    size: int
    total_pages: int


class VisibilityUpdate(BaseModel):
    is_hidden: bool


class ImageUploadResponse(BaseModel):
    image_url: str
