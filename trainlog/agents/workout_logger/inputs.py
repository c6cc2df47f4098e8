"""Tool input models. Their JSON schemas are what the model sees."""

from pydantic import BaseModel, Field

WORKOUT_INDEX_DESCRIPTION = (
    "Zero-based index of the workout being processed when the message describes several workouts. "
    "Use the same index for every tool call that belongs to that workout."
)


class DetectDisciplineInput(BaseModel):
    user_message: str = Field(description="The user's workout description")
    workout_index: int | None = Field(default=None, ge=0, description=WORKOUT_INDEX_DESCRIPTION)


class ExtractWorkoutInput(BaseModel):
    discipline: str | None = Field(
        default=None,
        description="Discipline returned by detect_discipline for this workout (defaults to the detected one)",
    )
    user_message: str = Field(description="Text describing only this workout")
    workout_index: int | None = Field(default=None, ge=0, description=WORKOUT_INDEX_DESCRIPTION)


class ValidateWorkoutInput(BaseModel):
    workout_index: int | None = Field(default=None, ge=0, description=WORKOUT_INDEX_DESCRIPTION)


class NormalizeWorkoutInput(BaseModel):
    workout_index: int | None = Field(default=None, ge=0, description=WORKOUT_INDEX_DESCRIPTION)


class GenerateSummaryInput(BaseModel):
    original_message: str = Field(description="The user's original message for this workout")
    workout_index: int | None = Field(default=None, ge=0, description=WORKOUT_INDEX_DESCRIPTION)


class SaveWorkoutInput(BaseModel):
    workout_index: int | None = Field(default=None, ge=0, description=WORKOUT_INDEX_DESCRIPTION)
