"""SQLAlchemy models for persisted prediction statistics."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class ProcedureAddCount(Base):
    """Total number of times a procedure was added across sessions."""

    __tablename__ = "procedure_add_counts"

    control_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<ProcedureAddCount(control_name='{self.control_name}', count={self.count})>"


class ProcedureCoOccurrence(Base):
    """Sessions in which ``companion`` was added while ``anchor`` was present.

    Directional: (anchor, companion) and (companion, anchor) are separate rows.
    """

    __tablename__ = "procedure_co_occurrences"
    __table_args__ = (
        UniqueConstraint("anchor", "companion", name="uq_procedure_co_occurrences_pair"),
    )

    anchor: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    companion: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"<ProcedureCoOccurrence(anchor='{self.anchor}', "
            f"companion='{self.companion}', count={self.count})>"
        )


class PredictionSeedRun(Base):
    """Provenance of the most recent seeding run (at most one row)."""

    __tablename__ = "prediction_seed_runs"

    facility_types: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="rules",
    )
    seeded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
