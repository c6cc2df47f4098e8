from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class WorkoutRecord(Base):
    """Logged workout.

    Stores:
    - workout_id: System-generated id (``workout_{user}_{ms}_{short}``)
    - user_id / coach_ids / conversation_id: ownership and origin
    - completed_at: When the workout was completed (UTC)
    - discipline / workout_name: denormalized for listing
    - workout_data: Full structured workout (JSON)
    - summary: Natural-language summary used for search and memory
    - template_id / group_id: Training-program template the workout was logged against
    - extraction_metadata: confidence, normalization summary, review info
    """

    __tablename__ = "workout_logs"

    workout_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    coach_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    conversation_id: Mapped[str | None] = mapped_column(String, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    discipline: Mapped[str] = mapped_column(String, nullable=False)
    workout_name: Mapped[str | None] = mapped_column(String, nullable=True)
    workout_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    template_id: Mapped[str | None] = mapped_column(String, nullable=True)
    group_id: Mapped[str | None] = mapped_column(String, nullable=True)
    extraction_metadata: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_workout_logs_user_completed", "user_id", "completed_at"),)


class WorkoutSearchDocument(Base):
    """Search document for a logged workout (summary plus filterable fields)."""

    __tablename__ = "workout_search_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workout_id: Mapped[str] = mapped_column(String, ForeignKey("workout_logs.workout_id"), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    discipline: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    search_metadata: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    indexed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class TemplateWorkoutLink(Base):
    """Link between a program template and the workout logged against it."""

    __tablename__ = "template_workout_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    coach_id: Mapped[str] = mapped_column(String, nullable=False)
    template_id: Mapped[str] = mapped_column(String, nullable=False)
    group_id: Mapped[str | None] = mapped_column(String, nullable=True)
    workout_id: Mapped[str] = mapped_column(String, ForeignKey("workout_logs.workout_id"), nullable=False)
    scaling_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    linked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("template_id", "workout_id", name="uq_template_workout"),)
