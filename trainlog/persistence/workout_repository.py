"""Workout persistence.

``WorkoutRepository`` is the boundary the save tool talks to. The SQLAlchemy
implementation stores workouts, their search documents and template links in
the relational database; tests substitute an in-memory fake.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trainlog.core.errors import PersistenceError
from trainlog.db.models import TemplateWorkoutLink, WorkoutRecord, WorkoutSearchDocument
from trainlog.db.session import get_session
from trainlog.persistence.types import TemplateContext, WorkoutSaveRequest

SessionFactory = Callable[[], AbstractContextManager[Session]]


@runtime_checkable
class WorkoutRepository(Protocol):
    async def save(self, request: WorkoutSaveRequest) -> str:
        """Persist a workout and return its id. Raises PersistenceError."""
        ...

    async def index_for_search(self, request: WorkoutSaveRequest) -> None:
        """Store the summary as a search document (best-effort)."""
        ...

    async def link_to_template(
        self,
        user_id: str,
        coach_id: str,
        template_context: TemplateContext,
        workout_id: str,
    ) -> bool:
        """Link a saved workout to the template it was logged against (best-effort)."""
        ...


def build_search_content(request: WorkoutSaveRequest) -> str:
    parts = [request.summary]
    if request.workout_name:
        parts.append(f"Workout: {request.workout_name}")
    parts.append(f"Discipline: {request.discipline}")
    parts.append(f"Completed: {request.completed_at.date().isoformat()}")
    return "\n".join(parts)


class SqlWorkoutRepository:
    """SQLAlchemy-backed workout repository."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    async def save(self, request: WorkoutSaveRequest) -> str:
        try:
            with self._session_factory() as session:
                session.merge(
                    WorkoutRecord(
                        workout_id=request.workout_id,
                        user_id=request.user_id,
                        coach_ids=request.coach_ids,
                        conversation_id=request.conversation_id,
                        completed_at=request.completed_at,
                        discipline=request.discipline,
                        workout_name=request.workout_name,
                        workout_data=request.workout_data,
                        summary=request.summary,
                        template_id=request.template_id,
                        group_id=request.group_id,
                        extraction_metadata=request.extraction_metadata,
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save workout: {e}", workout_id=request.workout_id) from e

        logger.info(
            "Workout saved",
            workout_id=request.workout_id,
            user_id=request.user_id,
            discipline=request.discipline,
        )
        return request.workout_id

    async def index_for_search(self, request: WorkoutSaveRequest) -> None:
        try:
            with self._session_factory() as session:
                existing = session.scalar(
                    select(WorkoutSearchDocument).where(WorkoutSearchDocument.workout_id == request.workout_id)
                )
                document = existing or WorkoutSearchDocument(workout_id=request.workout_id)
                document.user_id = request.user_id
                document.discipline = request.discipline
                document.content = build_search_content(request)
                document.search_metadata = {
                    "record_type": "workout_summary",
                    "workout_name": request.workout_name,
                    "completed_at": request.completed_at.isoformat(),
                    "confidence": request.extraction_metadata.get("confidence"),
                }
                document.indexed_at = datetime.now(timezone.utc)
                session.add(document)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to index workout: {e}", workout_id=request.workout_id) from e

        logger.debug("Workout summary indexed", workout_id=request.workout_id)

    async def link_to_template(
        self,
        user_id: str,
        coach_id: str,
        template_context: TemplateContext,
        workout_id: str,
    ) -> bool:
        scaling = template_context.scaling_analysis or {}
        scaling_score = scaling.get("scaling_score") if isinstance(scaling.get("scaling_score"), (int, float)) else None
        try:
            with self._session_factory() as session:
                session.add(
                    TemplateWorkoutLink(
                        user_id=user_id,
                        coach_id=coach_id,
                        template_id=template_context.template_id,
                        group_id=template_context.group_id,
                        workout_id=workout_id,
                        scaling_score=scaling_score,
                    )
                )
        except SQLAlchemyError as e:
            logger.bind(workout_id=workout_id, template_id=template_context.template_id, error=str(e)).warning(
                "Failed to link workout to template"
            )
            return False

        logger.info("Workout linked to template", workout_id=workout_id, template_id=template_context.template_id)
        return True
