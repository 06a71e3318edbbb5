"""First-run data seeding."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from truedope.config.logging_config import redact_email
from truedope.config.settings import Settings
from truedope.features.user.models import User, UserRole
from truedope.shared.validators.email import normalize_email
from truedope.shared.validators.password import password_policy_violations

logger = logging.getLogger(__name__)


async def seed_admin_user(session: AsyncSession, config: Settings) -> User | None:
    """Create the initial administrator when the users table is empty.

    Requires ADMIN_EMAIL and ADMIN_PASSWORD. Returns the created user, or None
    when nothing was seeded.
    """
    if not config.admin_email or not config.admin_password:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set, skipping admin seeding")
        return None

    user_count = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    if user_count > 0:
        return None

    violations = password_policy_violations(config.admin_password, config.password_policy)
    if violations:
        logger.error(f"ADMIN_PASSWORD rejected, admin not seeded: {'; '.join(violations)}")
        return None

    admin = User(
        email=normalize_email(config.admin_email),
        hashed_password=User.hash_password(config.admin_password),
        first_name=config.admin_first_name,
        last_name=config.admin_last_name,
        role=UserRole.ADMIN,
    )
    session.add(admin)
    await session.commit()
    logger.info(f"Seeded initial admin user {redact_email(admin.email)}")
    return admin
