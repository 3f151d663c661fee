"""
Security utilities for API key management.

This module contains functions for generating API key secrets and masking
them for display.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.config import settings

API_KEY_BYTES = 32
VISIBLE_KEY_CHARS = 8


def generate_api_key_plaintext() -> str:
    """
    Generate a secure random API key.

    Returns:
        64-character hexadecimal string (32 bytes = 256 bits of entropy)
    """
    return secrets.token_hex(API_KEY_BYTES)


def mask_api_key(key: Optional[str]) -> Optional[str]:
    """
    Mask an API key for display, keeping only its trailing characters.

    Args:
        key: Full API key

    Returns:
        Key with everything but the last 8 characters replaced by '*'
    """
    if not key:
        return key
    if len(key) <= VISIBLE_KEY_CHARS:
        return "*" * len(key)
    return "*" * (len(key) - VISIBLE_KEY_CHARS) + key[-VISIBLE_KEY_CHARS:]


def default_api_key_expiry(now: Optional[datetime] = None) -> datetime:
    """Expiry applied when a key is created without one (one year by default)."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(days=settings.API_KEY_DEFAULT_EXPIRY_DAYS)
