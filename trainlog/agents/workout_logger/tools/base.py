"""Shared pieces for the workout logger tools."""

import copy
from typing import Any, TypeVar

from pydantic import BaseModel

from trainlog.agents.core.tool import AgentTool
from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.result_store import ResultStore
from trainlog.agents.workout_logger.results import (
    ExtractionResult,
    NormalizationToolResult,
    RoleKey,
    ValidationResult,
)
from trainlog.core.errors import PreconditionError

InputT = TypeVar("InputT", bound=BaseModel)
ResultT = TypeVar("ResultT", bound=BaseModel)

# Stage label and the tool that produces it, per role
STAGE_PRODUCERS: dict[RoleKey, tuple[str, str]] = {
    "discipline": ("Discipline detection", "detect_discipline"),
    "extraction": ("Extraction", "extract_workout_data"),
    "validation": ("Validation", "validate_workout_completeness"),
    "normalization": ("Normalization", "normalize_workout_data"),
    "summary": ("Summary", "generate_workout_summary"),
}


class WorkoutLoggerTool(AgentTool[InputT, WorkoutLoggerContext]):
    """Base class for tools that run inside a workout logger run."""


def require_result(store: ResultStore, role: RoleKey, index: int | None, expected: type[ResultT]) -> ResultT:
    """Read a prior stage's successful result.

    Raises:
        PreconditionError: If the stage has not produced a successful result
    """
    value = store.read(role, index)
    if isinstance(value, expected):
        return value

    stage, producer = STAGE_PRODUCERS[role]
    raise PreconditionError(producer, stage)


def best_workout_data(store: ResultStore, index: int | None) -> dict[str, Any] | None:
    """Best available candidate for an index: normalized, then validated, then extracted."""
    normalization = store.read("normalization", index)
    if isinstance(normalization, NormalizationToolResult) and normalization.normalized_data:
        return copy.deepcopy(normalization.normalized_data)

    validation = store.read("validation", index)
    if isinstance(validation, ValidationResult) and validation.workout_data:
        return copy.deepcopy(validation.workout_data)

    extraction = store.read("extraction", index)
    if isinstance(extraction, ExtractionResult):
        return copy.deepcopy(extraction.workout_data)
    return None
