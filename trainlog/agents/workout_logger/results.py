"""Result models for the workout logger.

Every tool result is tagged with the tool that produced it (``tool``), so a
stored value can be validated and routed by that tag alone. ``ToolError``
records a failed call under the same role key so later stages (and the
blocking gate) can see that the stage ran and failed.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from trainlog.workouts.normalization import NormalizationIssue

ToolName = Literal[
    "detect_discipline",
    "extract_workout_data",
    "validate_workout_completeness",
    "normalize_workout_data",
    "generate_workout_summary",
    "save_workout_to_database",
]

RoleKey = Literal["discipline", "extraction", "validation", "normalization", "summary", "save"]

STORAGE_KEY_MAP: dict[str, RoleKey] = {
    "detect_discipline": "discipline",
    "extract_workout_data": "extraction",
    "validate_workout_completeness": "validation",
    "normalize_workout_data": "normalization",
    "generate_workout_summary": "summary",
    "save_workout_to_database": "save",
}


class DisciplineResult(BaseModel):
    tool: Literal["detect_discipline"] = "detect_discipline"
    discipline: str
    confidence: float
    method: str = "ai_detection"
    reasoning: str = ""


class ExtractionResult(BaseModel):
    tool: Literal["extract_workout_data"] = "extract_workout_data"
    workout_data: dict[str, Any]
    completed_at: datetime
    generation_method: Literal["tool", "fallback"]
    user_message: str = ""


class ValidationResult(BaseModel):
    """Validation verdict. ``should_save=False`` is final for its workout index."""

    tool: Literal["validate_workout_completeness"] = "validate_workout_completeness"
    is_valid: bool
    should_save: bool
    should_normalize: bool
    confidence: float
    completeness: float
    blocking_flags: list[str] = Field(default_factory=list)
    validation_flags: list[str] = Field(default_factory=list)
    reason: str | None = None
    workout_data: dict[str, Any]
    original_date: str | None = None
    exercise_check_method: str | None = None
    is_qualitative: bool = False


class NormalizationToolResult(BaseModel):
    tool: Literal["normalize_workout_data"] = "normalize_workout_data"
    normalized_data: dict[str, Any]
    is_valid: bool
    issues: list[NormalizationIssue] = Field(default_factory=list)
    issues_found: int = 0
    issues_corrected: int = 0
    normalization_summary: str = ""
    normalization_confidence: float = 0.0
    normalization_method: str = "tool"


class SummaryResult(BaseModel):
    tool: Literal["generate_workout_summary"] = "generate_workout_summary"
    summary: str


class SaveResult(BaseModel):
    tool: Literal["save_workout_to_database"] = "save_workout_to_database"
    workout_id: str
    success: bool = True
    template_linked: bool = False
    search_indexing_scheduled: bool = False
    exercise_extraction_scheduled: bool = False


class ToolError(BaseModel):
    """A failed tool call, stored under the tool's role key."""

    tool: ToolName
    error: str
    error_type: str = "Exception"


class BlockedByValidation(BaseModel):
    """Blocking gate veto, returned to the model as an error tool result."""

    error: Literal[True] = True
    blocked: Literal[True] = True
    reason: str
    blocking_flags: list[str] = Field(default_factory=list)


ToolResult = Annotated[
    Union[
        DisciplineResult,
        ExtractionResult,
        ValidationResult,
        NormalizationToolResult,
        SummaryResult,
        SaveResult,
    ],
    Field(discriminator="tool"),
]

StoredValue = Union[ToolResult, ToolError]

STORED_VALUE_ADAPTER: TypeAdapter[StoredValue] = TypeAdapter(StoredValue)


class SavedWorkoutSummary(BaseModel):
    workout_id: str
    discipline: str | None = None
    workout_name: str | None = None
    saved: bool = True


class WorkoutLogResult(BaseModel):
    """Caller-facing outcome of one extraction run."""

    success: bool
    skipped: bool = False
    workout_id: str | None = None
    discipline: str | None = None
    workout_name: str | None = None
    confidence: float | None = None
    completeness: float | None = None
    reason: str | None = None
    blocking_flags: list[str] | None = None
    extraction_metadata: dict[str, Any] | None = None
    normalization_summary: str | None = None
    all_workouts: list[SavedWorkoutSummary] | None = None
