"""Shared validation utilities"""

import re
from typing import Optional

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_mobile_number(mobile: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an Indian mobile number to its 10 local digits.

    Args:
        mobile: Phone number string in various formats (+91, spaces, dashes)

    Returns:
        10-digit mobile number

    Raises:
        ValueError: If the number does not have 10 digits
    """
    if not mobile:
        return mobile

    digits = re.sub(r"\D", "", mobile)

    # Handle +91 / 0 prefixes
    if digits.startswith("91") and len(digits) == 12:
        digits = digits[2:]
    elif digits.startswith("0") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Mobile number must be 10 digits")

    return digits


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


def validate_hhmm(value: str) -> str:
    """Validate a 24-hour "HH:MM" time string"""
    if not value or not HHMM_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid time '{value}', expected HH:MM (24-hour)")
    return value.strip()
