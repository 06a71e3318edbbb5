"""Authentication exceptions."""

from fastapi import status

from truedope.shared.errors.exceptions import AppException


class AuthenticationException(AppException):
    """Base authentication exception (401 with a Bearer challenge)."""

    code = "UNAUTHENTICATED"

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class UnauthenticatedException(AuthenticationException):
    """Raised when a bearer token is missing, invalid or expired."""


class InvalidCredentialsException(AuthenticationException):
    """Raised when the email or password is incorrect."""

    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__(detail="Invalid email or password")


class InvalidRefreshTokenException(AuthenticationException):
    """Raised when a refresh token is unknown, expired, revoked or already rotated."""

    code = "INVALID_REFRESH_TOKEN"

    def __init__(self):
        super().__init__(detail="Invalid or expired refresh token")


class AccountLockedException(AppException):
    """Raised when the account is temporarily locked after repeated failures."""

    code = "ACCOUNT_LOCKED"

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account temporarily locked due to too many failed login attempts",
        )


class AccountDisabledException(AppException):
    """Raised when the account has been disabled by an administrator."""

    code = "ACCOUNT_DISABLED"

    def __init__(self):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")


class InvalidResetTokenException(AppException):
    """Raised when a password reset token is unknown, expired or already used."""

    code = "INVALID_RESET_TOKEN"

    def __init__(self):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired reset token")


class InsufficientPermissionsException(AppException):
    """Raised when the caller lacks the required role."""

    code = "FORBIDDEN"

    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InsufficientRoleException(InsufficientPermissionsException):
    """Raised when user lacks required role."""

    def __init__(self, required_roles: list[str]):
        roles_str = ", ".join(required_roles)
        super().__init__(detail=f"User does not have required role(s): {roles_str}")
