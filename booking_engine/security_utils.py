"""
Security utilities for tenant API keys.

Keys are shown to the tenant once and stored only as a SHA-256 digest.
"""

import hashlib
import secrets

API_KEY_PREFIX = "sk_"


def generate_api_key() -> str:
    """Generate a secure API key"""
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest of an API key, the form kept in the database"""
    return hashlib.sha256(api_key.encode()).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks

    Args:
        a: First string
        b: Second string

    Returns:
        True if strings are equal, False otherwise
    """
    return secrets.compare_digest(a.encode(), b.encode())


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask all but the last few characters, for logging"""
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
