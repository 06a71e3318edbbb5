"""User-related exceptions."""

from fastapi import status

from truedope.shared.errors.exceptions import AppException, ConflictException, NotFoundException


class UserNotFound(NotFoundException):
    """Raised when user is not found."""

    def __init__(self):
        super().__init__(detail="User not found")


class EmailAlreadyExists(ConflictException):
    """Raised when email already exists."""

    def __init__(self):
        super().__init__(detail="Email already registered")


class IncorrectPassword(AppException):
    """Raised when password is incorrect."""

    code = "INCORRECT_PASSWORD"

    def __init__(self):
        super().__init__(detail="Current password is incorrect", status_code=status.HTTP_400_BAD_REQUEST)


class CannotModifySelf(AppException):
    """Raised when an administrator tries to demote or disable their own account."""

    def __init__(self, code: str, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST, code=code)


class CannotDemoteSelf(CannotModifySelf):
    def __init__(self):
        super().__init__(code="CANNOT_DEMOTE_SELF", detail="You cannot remove your own admin privileges")


class CannotDisableSelf(CannotModifySelf):
    def __init__(self):
        super().__init__(code="CANNOT_DISABLE_SELF", detail="You cannot disable your own account")
