"""Shared column mixins for ORM models."""

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_mixin


@declarative_mixin
class SoftDeleteMixin:
    """
    Adds a ``deleted_at`` soft-delete marker.

    ``live()`` is the single predicate every lookup composes so that
    soft-deleted rows never leak into queries, uniqueness checks or tree walks.
    """

    deleted_at = Column(
        DateTime,
        nullable=True,
        index=True,
    )

    @classmethod
    def live(cls):
        """SQL predicate selecting rows that are not soft-deleted."""
        return cls.deleted_at.is_(None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
