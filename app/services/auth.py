# services/auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AccountBlocked,
    Conflict,
    Unauthenticated,
    Unauthorized,
)
from app.core.security import PasswordHelper, jwt_manager, token_blacklist
from app.models.banned_email import BannedEmail
from app.models.user import User
from app.schemas.auth import AuthResponse, LoginRequest, SignupRequest
from app.schemas.user import UserResponse
from app.services import account_status

logger = logging.getLogger(__name__)

SIGNUP_BANNED_MESSAGE = "This email is permanently prohibited from creating an account."
LOGIN_BANNED_MESSAGE = (
    "This account has been permanently banned due to violations of our policies."
)


class AuthService:
    """Email/password authentication for society members"""

    def __init__(self):
        self.password_helper = PasswordHelper()

    @staticmethod
    def is_email_banned(email: str, db: Session) -> bool:
        return (
            db.query(BannedEmail.id)
            .filter(BannedEmail.email == email.strip().lower())
            .first()
            is not None
        )

    def _issue_tokens(self, user: User, message: str) -> AuthResponse:
        access_token, refresh_token = jwt_manager.create_token_pair(user)
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=int(
                timedelta(days=settings.jwt_user_expiration).total_seconds()
            ),
            user=UserResponse.model_validate(user),
            message=message,
        )

    def signup(self, request: SignupRequest, db: Session) -> AuthResponse:
        """Create a member account. Banned and already registered emails are refused."""
        if self.is_email_banned(request.email, db):
            logger.warning(f"Signup refused for banned email: {request.email}")
            raise Unauthorized(SIGNUP_BANNED_MESSAGE)

        if db.query(User.id).filter(User.email == request.email).first():
            raise Conflict("User with this email already exists")

        user = User(
            email=request.email,
            full_name=request.full_name.strip(),
            hashed_password=self.password_helper.hash_password(request.password),
            role="member",
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise Conflict("User with this email already exists")
        db.refresh(user)

        logger.info(f"New member registered: {user.id}")
        return self._issue_tokens(user, "Registration successful")

    def login(self, request: LoginRequest, db: Session) -> AuthResponse:
        """
        Password login. Banned emails and blocked accounts never receive tokens;
        blocked accounts are told why and, for timeouts, until when.
        """
        if self.is_email_banned(request.email, db):
            raise Unauthorized(LOGIN_BANNED_MESSAGE)

        user = db.query(User).filter(User.email == request.email).first()
        if not user or not self.password_helper.check_password(
            request.password, user.hashed_password
        ):
            raise Unauthenticated("Invalid email or password")

        status = account_status.effective_status(user)
        if not isinstance(status, account_status.Normal):
            logger.info(f"Login refused for blocked user {user.id}: {status.kind}")
            raise AccountBlocked(account_status.describe(status))

        user.last_login = datetime.now(timezone.utc)
        db.commit()
        db.refresh(user)

        logger.info(f"User login successful: {user.id}")
        return self._issue_tokens(user, "Login successful")

    def refresh(self, refresh_token: str, db: Session) -> AuthResponse:
        payload = jwt_manager.verify_token(refresh_token, "refresh")
        if token_blacklist.is_blacklisted(refresh_token):
            raise Unauthenticated("Token has been revoked")

        user_id = payload["user_id"]
        if token_blacklist.is_user_logged_out(user_id, payload.get("iat", 0)):
            raise Unauthenticated("Token has been revoked")

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise Unauthenticated("User not found")

        status = account_status.effective_status(user)
        if not isinstance(status, account_status.Normal):
            raise AccountBlocked(account_status.describe(status))

        return self._issue_tokens(user, "Token refreshed")

    def logout(self, token: str) -> Dict[str, Any]:
        """Logout user by blacklisting the token"""
        try:
            payload = jwt_manager.verify_token(token, "access")
        except Unauthenticated as e:
            # An unusable token is already as good as logged out
            logger.info(f"Logout attempted with invalid token: {e.message}")
            return {"success": True, "message": "Logout successful"}

        ttl = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
        if ttl > 0 and not token_blacklist.add_token(token, ttl):
            logger.warning("Failed to blacklist token, but continuing with logout")

        logger.info(f"User logged out successfully: {payload.get('user_id')}")
        return {"success": True, "message": "Logout successful"}


auth_service = AuthService()
