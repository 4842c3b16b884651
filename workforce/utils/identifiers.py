"""Normalisation of login identifiers (email, phone, employee code)."""
from typing import Optional


def normalize_identifier(value: Optional[str]) -> Optional[str]:
    """
    Trim and lower-case an identifier; blank values become None.

    Applied on write so that lookups can use plain indexed equality.
    """
    if value is None:
        return None
    value = str(value).strip().lower()
    return value or None


def normalize_company_code(value: Optional[str]) -> Optional[str]:
    """Company codes are stored upper-case."""
    if value is None:
        return None
    value = str(value).strip().upper()
    return value or None
