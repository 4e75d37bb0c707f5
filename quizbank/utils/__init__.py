"""Utility functions and helpers."""

from .security import UNUSABLE_PASSWORD, get_password_hash, has_usable_password, verify_password

__all__ = [
    "UNUSABLE_PASSWORD",
    "get_password_hash",
    "has_usable_password",
    "verify_password",
]
