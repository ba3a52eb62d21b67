"""Shared validation utilities"""

import re
from typing import Optional

HHMM_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to digits with an optional leading +.

    Raises:
        ValueError: If fewer than 7 or more than 15 digits remain
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must contain between 7 and 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


def validate_hhmm(value: str, allow_end_of_day: bool = False) -> str:
    """
    Validate a wall-clock time in HH:MM (24h) format.

    "24:00" is only accepted when allow_end_of_day is set, for window ends.
    """
    if value is None:
        raise ValueError("Time is required")

    value = value.strip()
    if allow_end_of_day and value == "24:00":
        return value
    if not HHMM_PATTERN.match(value):
        raise ValueError("Invalid time format. Use HH:MM (e.g. 09:00)")
    return value


def validate_day_of_week(value: int) -> int:
    """Day of week with 0=Sunday .. 6=Saturday"""
    if value is None or not 0 <= value <= 6:
        raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    return value
