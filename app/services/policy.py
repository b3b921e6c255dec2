"""
Role & protection policy.

Single decision point for "may this actor do this to that target". Every
function takes freshly loaded ``User`` rows; nothing here is cached between
requests because roles and protection can change between page views.
"""

import enum
import logging
from typing import Optional

from app.core.errors import ProtectedTarget, Unauthenticated, Unauthorized
from app.models.user import User

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    MEMBER = "member"
    MEDIA_MANAGER = "media_manager"
    PRESIDENT = "president"


class Operation(str, enum.Enum):
    MANAGE_USERS = "manage_users"
    MODERATE_CONTENT = "moderate_content"


def is_protected(principal: Optional[User]) -> bool:
    return principal is not None and principal.is_protected


def can_moderate_content(actor: Optional[User]) -> bool:
    return actor is not None and actor.role in (
        Role.MEDIA_MANAGER.value,
        Role.PRESIDENT.value,
    )


def can_manage_users(actor: Optional[User]) -> bool:
    return actor is not None and actor.role == Role.PRESIDENT.value


_REQUIREMENTS = {
    Operation.MANAGE_USERS: (can_manage_users, "Unauthorized. President access required."),
    Operation.MODERATE_CONTENT: (can_moderate_content, "Unauthorized."),
}


def require(actor: Optional[User], operation: Operation) -> None:
    """Raise unless ``actor`` holds the role ``operation`` needs."""
    if actor is None:
        raise Unauthenticated()
    check, message = _REQUIREMENTS[operation]
    if not check(actor):
        logger.warning(
            f"User {actor.id} ({actor.role}) denied {operation.value}"
        )
        raise Unauthorized(message)


def authorize_mutation(
    actor: Optional[User],
    target: User,
    operation: Operation = Operation.MANAGE_USERS,
    protected_message: Optional[str] = None,
) -> None:
    """
    Authorize ``actor`` to mutate ``target``.

    The protection check runs before any role check: the protected identity
    is refused even to callers that would otherwise be allowed, and its
    message wins over the generic role denial.
    """
    if is_protected(target):
        logger.warning(
            f"Blocked {operation.value} on protected user {target.id} "
            f"by {actor.id if actor else 'anonymous'}"
        )
        raise ProtectedTarget(protected_message)
    require(actor, operation)
