# core/security.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
import redis
from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import DependencyFailure, Unauthenticated
from app.models.user import User

logger = logging.getLogger(__name__)


class PasswordHelper:
    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        return hashed.decode("utf-8")

    @staticmethod
    def check_password(password: str, hashed_password: Optional[str]) -> bool:
        """Check a password against its bcrypt hash. Missing hashes never match."""
        if not hashed_password:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


class JWTManager:
    """JWT token management for authentication"""

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.user_token_expire = timedelta(days=settings.jwt_user_expiration)
        self.refresh_token_expire = timedelta(days=settings.jwt_refresh_expiration)
        self.issuer = settings.jwt_issuer

    def _encode(self, user: User, token_type: str, lifetime: timedelta) -> str:
        issued_at = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "user_id": user.id,
            "email": user.email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
            "iss": self.issuer,
            "type": token_type,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_token_pair(self, user: User) -> Tuple[str, str]:
        """
        Create both access and refresh tokens

        Args:
            user: User model instance

        Returns:
            Tuple of (access_token, refresh_token)
        """
        access_token = self._encode(user, "access", self.user_token_expire)
        refresh_token = self._encode(user, "refresh", self.refresh_token_expire)
        logger.info(f"Token pair created for user: {user.id}")
        return access_token, refresh_token

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Verify and decode a JWT token.

        Raises ``Unauthenticated`` for anything that is not a valid,
        unexpired, correctly typed token from this issuer.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": True},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise Unauthenticated("Invalid or expired token")

        if payload.get("type") != token_type:
            raise Unauthenticated(f"Invalid token type. Expected {token_type}")

        if payload.get("iss") != self.issuer:
            raise Unauthenticated("Invalid token issuer")

        if "user_id" not in payload:
            raise Unauthenticated("Invalid token: Not a valid user token")

        return payload


class TokenBlacklist:
    """Token blacklist management using Redis, in memory when Redis is off"""

    def __init__(self, redis_client=None):
        self.redis_client = redis_client
        self._memory_blacklist: Dict[str, float] = {}  # token -> expires at
        self._memory_user_logout: Dict[int, float] = {}  # user id -> logged out at

    @staticmethod
    def _retention() -> float:
        return timedelta(days=settings.jwt_refresh_expiration).total_seconds()

    def _prune_memory(self, now: float) -> None:
        """Drop entries no unexpired token can match any more."""
        cutoff = now - self._retention()
        self._memory_blacklist = {
            token: expires_at
            for token, expires_at in self._memory_blacklist.items()
            if expires_at > now
        }
        self._memory_user_logout = {
            user_id: logged_out_at
            for user_id, logged_out_at in self._memory_user_logout.items()
            if logged_out_at > cutoff
        }

    def add_token(self, token: str, ttl: Optional[int] = None) -> bool:
        """
        Add token to blacklist

        Args:
            token: JWT token to blacklist
            ttl: Time to live in seconds (optional)

        Returns:
            True if successfully added, False otherwise
        """
        try:
            if self.redis_client:
                ttl = ttl or int(self._retention())
                return bool(self.redis_client.setex(f"blacklist:{token}", ttl, "1"))
            now = datetime.now(timezone.utc).timestamp()
            self._prune_memory(now)
            self._memory_blacklist[token] = now + (ttl or self._retention())
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to blacklist token: {e}")
            return False

    def is_blacklisted(self, token: str) -> bool:
        try:
            if self.redis_client:
                return bool(self.redis_client.get(f"blacklist:{token}"))
            return token in self._memory_blacklist
        except redis.RedisError as e:
            logger.error(f"Failed to check token blacklist: {e}")
            raise DependencyFailure()

    def clear_user_tokens(self, user_id: int) -> bool:
        """
        Invalidate every token issued to ``user_id`` up to now
        (sign the user out of all devices).
        """
        now = datetime.now(timezone.utc).timestamp()
        try:
            if self.redis_client:
                return bool(
                    self.redis_client.setex(
                        f"user_logout:{user_id}", int(self._retention()), str(now)
                    )
                )
            self._prune_memory(now)
            self._memory_user_logout[user_id] = now
            return True
        except redis.RedisError as e:
            logger.error(f"Failed to clear user tokens: {e}")
            return False

    def is_user_logged_out(self, user_id: int, token_issued_at: int) -> bool:
        """
        Check if user was signed out from all devices after the token was issued
        """
        try:
            if self.redis_client:
                logout_timestamp = self.redis_client.get(f"user_logout:{user_id}")
            else:
                logout_timestamp = self._memory_user_logout.get(user_id)
        except redis.RedisError as e:
            logger.error(f"Failed to check user logout status: {e}")
            raise DependencyFailure()
        if logout_timestamp is None:
            return False
        return float(logout_timestamp) > token_issued_at


def _build_blacklist() -> TokenBlacklist:
    if not settings.redis_enabled:
        return TokenBlacklist()
    client = redis.Redis.from_url(settings.redis_url)
    logger.info("Token blacklist backed by Redis")
    return TokenBlacklist(client)


# Global instances
jwt_manager = JWTManager()
token_blacklist = _build_blacklist()
