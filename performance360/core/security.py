import re
from typing import Optional, Tuple

COMMON_PASSWORDS = {
    "password",
    "password@123",
    "12345678",
    "qwerty123",
    "admin123",
}

_SPECIAL_CHARS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


def validate_password_strength(password: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Check a candidate password against the account password policy.

    Returns (is_valid, message) where message explains the first failed rule.
    """
    if not password:
        return False, "Password is required"
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"
    # bcrypt only hashes the first 72 bytes
    if len(password.encode("utf-8")) > 72:
        return False, "Password must be no more than 72 bytes long"
    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", password):
        return False, "Password must contain at least one number"
    if not _SPECIAL_CHARS.search(password):
        return False, "Password must contain at least one special character"
    if password.lower() in COMMON_PASSWORDS:
        return False, "Password is too common. Please choose a stronger password"
    return True, None
