"""
Validation and normalisation helpers shared by schemas and services.
"""

import re
from typing import Optional, Tuple
from email_validator import validate_email, EmailNotValidError

SLUG_STRIP = re.compile(r"[^a-z0-9\s-]")
SLUG_SPACES = re.compile(r"\s+")
SLUG_DASHES = re.compile(r"-+")
MOBILE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")

# Unit -> square feet
AREA_UNIT_FACTORS = {
    "sq_ft": 1.0,
    "sq_m": 10.764,
    "sq_yd": 9.0,
}


def slugify(text: str) -> str:
    """
    Lowercase, drop anything that is not a letter, digit, space or dash,
    turn whitespace into dashes and collapse repeated dashes.
    """
    slug = SLUG_STRIP.sub("", (text or "").lower().strip())
    slug = SLUG_SPACES.sub("-", slug)
    slug = SLUG_DASHES.sub("-", slug)
    return slug.strip("-")


def normalize_email(email: str) -> str:
    """
    Validate and lowercase an email address.

    Raises:
        ValueError: If the address is malformed
    """
    try:
        valid = validate_email(email.strip(), check_deliverability=False)
        return valid.normalized.lower()
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email format: {str(e)}")


def normalize_mobile(mobile: str) -> str:
    """Strip spaces, dashes and brackets; keep a leading plus."""
    cleaned = re.sub(r"[\s\-()]", "", (mobile or "").strip())
    if not MOBILE_PATTERN.match(cleaned):
        raise ValueError("Invalid mobile number format")
    return cleaned


def to_square_feet(size: Optional[float], unit: Optional[str]) -> Optional[float]:
    if size is None:
        return None
    factor = AREA_UNIT_FACTORS.get((unit or "sq_ft").lower())
    if factor is None:
        raise ValueError(f"Unsupported area unit: {unit}")
    return round(size * factor, 2)


def split_contacts(raw: Optional[str]) -> Tuple[str, ...]:
    """Comma separated contact list to a tuple of trimmed, non-empty entries."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())
