"""Storage access layer."""

from .base import Repository

__all__ = ["Repository"]
