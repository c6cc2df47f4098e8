"""Types exchanged with the persistence layer."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class TemplateContext(BaseModel):
    """Training-program template a workout is being logged against."""

    template_id: str
    group_id: str | None = None
    scaling_analysis: dict[str, Any] | None = None


class WorkoutSaveRequest(BaseModel):
    """Everything needed to persist one workout."""

    workout_id: str
    user_id: str
    coach_ids: list[str] = Field(default_factory=list)
    conversation_id: str | None = None
    completed_at: datetime
    workout_data: dict[str, Any]
    summary: str
    template_id: str | None = None
    group_id: str | None = None
    extraction_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def discipline(self) -> str:
        return str(self.workout_data.get("discipline") or "unknown")

    @property
    def workout_name(self) -> str | None:
        return self.workout_data.get("workout_name")


@dataclass(frozen=True)
class ExerciseExtractionJob:
    """Job asking the exercise worker to derive per-exercise records from a workout.

    Attributes:
        user_id: Owning user
        coach_id: Coach the workout was logged with
        workout_id: Saved workout id
        workout_data: Saved workout data
        completed_at: Completion time (ISO 8601)
        created_at: Unix timestamp when the job was created
    """

    user_id: str
    coach_id: str
    workout_id: str
    workout_data: dict
    completed_at: str
    created_at: float
