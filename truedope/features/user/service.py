"""User service layer."""

import logging

from truedope.config.settings import PasswordPolicy
from truedope.shared.errors.exceptions import ValidationException
from truedope.shared.validators.password import password_policy_violations

from .exceptions import IncorrectPassword
from .models import User

logger = logging.getLogger(__name__)


class UserService:
    """Service for self-service account operations."""

    @staticmethod
    async def update_profile(user: User, first_name: str | None = None, last_name: str | None = None) -> User:
        """Update the user's names. ``None`` leaves a field unchanged."""
        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name

        logger.info(f"Profile updated for user: {user.id}")
        return user

    @staticmethod
    async def change_password(user: User, current_password: str, new_password: str, policy: PasswordPolicy) -> None:
        """Change user password.

        Args:
            user: User object
            current_password: Current password
            new_password: New password
            policy: Password rules the new password must satisfy

        Raises:
            IncorrectPassword: If current password is incorrect
            ValidationException: If the new password breaks the policy

        """
        if not user.verify_password(current_password):
            raise IncorrectPassword()

        violations = password_policy_violations(new_password, policy)
        if violations:
            raise ValidationException("newPassword", violations, detail="Password does not meet requirements")

        # Salt handled automatically by Argon2
        user.hashed_password = User.hash_password(new_password)
        logger.info(f"Password changed for user: {user.id}")
