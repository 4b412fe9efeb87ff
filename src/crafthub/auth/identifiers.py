"""Login identifier classification (email address vs. phone number)."""

import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
MIN_PHONE_LENGTH = 10


def is_email(identifier: str) -> bool:
    return bool(EMAIL_RE.match(identifier))


def is_phone(identifier: str) -> bool:
    return bool(PHONE_RE.match(identifier)) and len(identifier) >= MIN_PHONE_LENGTH


def identifier_field(identifier: str) -> str:
    """User column an identifier is looked up by ("email" or "phone").

    Raises ValueError for anything that is neither.
    """
    if is_email(identifier):
        return "email"
    if is_phone(identifier):
        return "phone"
    raise ValueError("Please provide a valid email or phone number")
