from typing import Annotated

from fastapi import APIRouter, Depends, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user, security
from app.core.limiter import limiter
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshTokenRequest,
    SignupRequest,
)
from app.schemas.user import UserResponse
from app.services.auth import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def signup(request: SignupRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Create a member account. Banned emails are refused."""
    return auth_service.signup(request, db)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request, body: LoginRequest, db: Session = Depends(get_db)
) -> AuthResponse:
    """
    Login with email and password.

    - Banned emails are refused.
    - Timed-out or suspended accounts get 403 with the reason and no tokens.
    """
    return auth_service.login(body, db)


@router.post("/refresh", response_model=AuthResponse)
async def refresh_token(
    request: RefreshTokenRequest, db: Session = Depends(get_db)
) -> AuthResponse:
    """Refresh access token using refresh token"""
    return auth_service.refresh(request.refresh_token, db)


@router.post("/logout")
async def logout(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> dict:
    """Logout current user"""
    token = credentials.credentials if credentials else ""
    return auth_service.logout(token)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Get current user information"""
    return UserResponse.model_validate(current_user)
