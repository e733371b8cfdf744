"""Shared model mixins for auditing."""
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Mapped, mapped_column

from ..extensions import db


def utcnow() -> datetime:
    """Naive UTC timestamp matching the columns' storage convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() + "Z" if value else None


class TimestampMixin:
    """Adds immutable creation and managed update timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        db.DateTime, default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


def enum_type(enum_cls, name: str):
    """Non-native enum column persisting member values rather than names."""
    return db.Enum(
        enum_cls,
        native_enum=False,
        validate_strings=True,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )
