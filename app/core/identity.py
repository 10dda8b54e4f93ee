"""
Identity helpers: every email is stored and compared in normalized form
"""


class InvalidIdentityError(ValueError):
    """Raised when an identity is missing or is not shaped like an email address."""


def normalize_identity(email: str) -> str:
    return email.strip().lower()


def is_valid_identity(email: str | None) -> bool:
    return bool(email) and "@" in email


def require_identity(email: str | None) -> str:
    if not is_valid_identity(email):
        raise InvalidIdentityError(f"Invalid email: {email!r}")
    return normalize_identity(email)
