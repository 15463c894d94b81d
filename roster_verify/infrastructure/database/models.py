"""SQLAlchemy models for the roster verification service."""
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Group(Base):
    """Group (school) owning a shared reference set."""

    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False
    )
    reference_set: Mapped[List[List[float]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Face embeddings extracted from the group photo"
    )
    reference_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="idle"
    )
    reference_error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )
    reference_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow
    )


class Subject(Base):
    """Roster entry holding the global verdict and the personal embedding."""

    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("groups.id", ondelete="CASCADE"),
        index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    roll_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    registration_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    class_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    age_group: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    personal_embedding: Mapped[Optional[List[float]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Subject-specific descriptor, usually from the day 1 photo"
    )
    verification_result: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="pending"
    )
    verification_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    verification_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    manual_verification_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    manual_verification_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    manual_verification_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_reset_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reset_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow
    )

    # Relationships
    day_verifications: Mapped[List["DayVerification"]] = relationship(
        back_populates="subject",
        cascade="all, delete-orphan",
        order_by="DayVerification.day",
        lazy="selectin"
    )


class DayVerification(Base):
    """Verdict for one of the six program days of a subject."""

    __tablename__ = "day_verifications"
    __table_args__ = (
        CheckConstraint("day BETWEEN 1 AND 6", name="ck_day_verifications_day"),
    )

    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        primary_key=True
    )
    day: Mapped[int] = mapped_column(Integer, primary_key=True)
    result: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="pending"
    )
    confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    subject: Mapped[Subject] = relationship(
        back_populates="day_verifications"
    )
