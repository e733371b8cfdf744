"""Named monotonic counters for human-readable identifiers."""
from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Mapped, mapped_column

from ..extensions import db


class SequenceCounter(db.Model):
    """Last value handed out for a named sequence."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(db.String(64), primary_key=True)
    value: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<SequenceCounter {self.name}={self.value}>"


def ensure_sequence(name: str) -> None:
    """Create the counter row up front so increments never race on insert."""
    if db.session.get(SequenceCounter, name) is None:
        db.session.add(SequenceCounter(name=name, value=0))
        db.session.commit()


def next_sequence_value(name: str) -> int:
    """Increment ``name`` in the current transaction and return the new value.

    The increment is a single ``UPDATE ... SET value = value + 1``, which the
    database serializes per row, so concurrent callers never share a value.
    The caller commits.
    """
    bumped = db.session.execute(
        update(SequenceCounter)
        .where(SequenceCounter.name == name)
        .values(value=SequenceCounter.value + 1)
        .execution_options(synchronize_session=False)
    )
    if bumped.rowcount == 0:
        db.session.add(SequenceCounter(name=name, value=1))
        db.session.flush()
        return 1
    return db.session.execute(select(SequenceCounter.value).where(SequenceCounter.name == name)).scalar_one()
