# app/schemas/user.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services import account_status

RoleName = Literal["member", "media_manager", "president"]


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserManagementResponse(UserResponse):
    """User response for the president's dashboard"""

    status: Literal["normal", "timed_out", "suspended"]
    timeout_until: Optional[datetime] = None
    is_protected: bool
    last_login: Optional[datetime] = None

    @classmethod
    def from_user(cls, user, now: Optional[datetime] = None) -> "UserManagementResponse":
        status = account_status.effective_status(user, now)
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            role=user.role,
            created_at=user.created_at,
            status=status.kind,
            timeout_until=getattr(status, "until", None),
            is_protected=user.is_protected,
            last_login=user.last_login,
        )


class ListUsersResponse(BaseModel):
    users: List[UserManagementResponse]
    total: int
    page: int
    size: int
    total_pages: int


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own record. Role and status are not among them."""

    model_config = ConfigDict(extra="forbid")

    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)


class UpdateRoleRequest(BaseModel):
    role: RoleName


class TimeoutRequest(BaseModel):
    minutes: int = Field(..., description="Length of the timeout in minutes")


class BlockNoticeResponse(BaseModel):
    status: Literal["timed_out", "suspended"]
    timeout_until: Optional[datetime] = None
    message: str
