"""Email validation helpers."""


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup: trimmed and lower-cased."""
    return email.strip().lower()
