"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Best-effort E.164 normalization for inbound identities.
    Unlike validate_us_phone this never raises: international numbers keep their
    digits with a leading +.
    """
    if not phone:
        return None
    phone = phone.strip()
    try:
        return validate_us_phone(phone)
    except ValueError:
        digits = re.sub(r"\D", "", phone)
        return f"+{digits}" if digits else None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email format")

    return email


def split_full_name(full_name: Optional[str]) -> tuple[str, str]:
    """'Jane van Dyke' -> ('Jane', 'van Dyke'); empty -> ('Unknown', 'Lead')"""
    parts = (full_name or "").split()
    if not parts:
        return "Unknown", "Lead"
    first = parts[0]
    last = " ".join(parts[1:]) or "Lead"
    return first, last
