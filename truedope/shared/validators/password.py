"""Password validation functions."""

from truedope.config.settings import PasswordPolicy


def password_policy_violations(password: str, policy: PasswordPolicy) -> list[str]:
    """Collect every rule of ``policy`` that ``password`` breaks.

    Returns an empty list when the password is acceptable.
    """
    violations: list[str] = []
    if len(password) < policy.min_length:
        violations.append(f"Password must be at least {policy.min_length} characters long")
    if policy.require_uppercase and not any(c.isupper() for c in password):
        violations.append("Password must contain at least one uppercase letter")
    if policy.require_lowercase and not any(c.islower() for c in password):
        violations.append("Password must contain at least one lowercase letter")
    if policy.require_digit and not any(c.isdigit() for c in password):
        violations.append("Password must contain at least one digit")
    return violations


def validate_password_strength(password: str, policy: PasswordPolicy | None = None) -> str:
    """Validate password strength requirements.

    Requirements (defaults):
    - At least 8 characters
    - At least one uppercase letter (A-Z)
    - At least one lowercase letter (a-z)
    - At least one digit (0-9)

    Args:
        password: Password string to validate
        policy: Thresholds to apply; the default policy when omitted

    Returns:
        The validated password string

    Raises:
        ValueError: With the first broken rule

    Examples:
        >>> validate_password_strength("SecurePass123")
        'SecurePass123'
        >>> validate_password_strength("weakpass1")
        Traceback (most recent call last):
        ...
        ValueError: Password must contain at least one uppercase letter

    """
    violations = password_policy_violations(password, policy or PasswordPolicy())
    if violations:
        raise ValueError(violations[0])
    return password
