import logging
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import ModerationError, Unauthenticated
from app.core.security import jwt_manager, token_blacklist
from app.models.user import User
from app.services import policy

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def resolve_principal(token: Optional[str], db: Session) -> User:
    """
    Resolve a Bearer token to a freshly loaded ``User``.

    Raises ``Unauthenticated`` when the token is missing, invalid, revoked,
    or belongs to a user that no longer exists.
    """
    if not token:
        raise Unauthenticated()

    payload = jwt_manager.verify_token(token, "access")

    if token_blacklist.is_blacklisted(token):
        raise Unauthenticated("Token has been revoked")

    user_id = payload.get("user_id")
    if token_blacklist.is_user_logged_out(user_id, payload.get("iat", 0)):
        raise Unauthenticated("Token has been revoked")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthenticated("User not found")

    return user


def _as_http(error: ModerationError) -> HTTPException:
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if error.status_code == status.HTTP_401_UNAUTHORIZED
        else None
    )
    return HTTPException(
        status_code=error.status_code, detail=error.message, headers=headers
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency that requires a valid Bearer token and returns the user.
    Raises 401 Unauthorized if the token is missing, invalid, or the user is not found.
    """
    token = credentials.credentials if credentials else None
    try:
        return resolve_principal(token, db)
    except ModerationError as e:
        raise _as_http(e)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Dependency that returns a user if a valid token is provided, or None otherwise.
    """
    if not credentials:
        return None
    try:
        return resolve_principal(credentials.credentials, db)
    except Unauthenticated:
        return None


def require_operation(operation: policy.Operation):
    """
    Dependency factory that requires the role ``operation`` needs.
    Usage: Depends(require_operation(policy.Operation.MANAGE_USERS))

    Only guards read endpoints; mutating services re-check the policy themselves.
    """

    async def role_checker(
        current_user: User = Depends(get_current_user),
    ) -> User:
        try:
            policy.require(current_user, operation)
        except ModerationError as e:
            raise _as_http(e)
        return current_user

    return role_checker
