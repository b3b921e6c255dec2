"""
Application initialization module
Handles initial setup tasks like seeding the protected president account
"""

import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import PasswordHelper
from app.models.user import User
from app.services import account_status
from app.services.account_status import Normal
from app.services.policy import Role

logger = logging.getLogger(__name__)


def init_protected_president(db: Session) -> User:
    """
    Make sure the protected president account exists, holds the president
    role and is in good standing.

    Creates it from settings when missing. An existing account only has its
    role and standing repaired; its password is left alone.

    Args:
        db: Database session
    """
    email = settings.protected_president_email
    try:
        president = db.query(User).filter(User.email == email).first()

        if president:
            if president.role != Role.PRESIDENT.value or account_status.is_blocked(
                president
            ):
                president.role = Role.PRESIDENT.value
                account_status.apply(president, Normal())
                db.commit()
                logger.warning(f"⚠️  Repaired role/standing of protected president {email}")
            logger.info(f"✅ Protected president already exists (ID: {president.id})")
            return president

        president = User(
            email=email,
            full_name=settings.protected_president_name,
            hashed_password=PasswordHelper.hash_password(
                settings.protected_president_password
            ),
            role=Role.PRESIDENT.value,
        )

        db.add(president)
        db.commit()
        db.refresh(president)

        logger.info("=" * 60)
        logger.info("🎉 PROTECTED PRESIDENT CREATED SUCCESSFULLY!")
        logger.info("=" * 60)
        logger.info(f"Email: {email}")
        logger.info(f"Name: {president.full_name}")
        logger.info("=" * 60)
        logger.warning("⚠️  IMPORTANT: Change the default password immediately!")
        logger.info("=" * 60)
        return president

    except Exception as e:
        logger.error(f"❌ Failed to initialize protected president: {e}")
        db.rollback()
        raise


def initialize_application(db: Session) -> None:
    """
    Run all application initialization tasks.

    Args:
        db: Database session
    """
    logger.info("🚀 Starting application initialization...")

    init_protected_president(db)

    logger.info("✅ Application initialization completed!")
