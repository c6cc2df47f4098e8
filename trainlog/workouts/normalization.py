"""Workout normalization.

Repairs a workout candidate whose structure does not match its discipline
schema (fields in the wrong place, inconsistent exercise shapes). The model
returns a normalized copy plus the issues it found; callers decide whether to
accept the copy.
"""

import copy
import json
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from trainlog.config.models import NORMALIZATION_MODEL
from trainlog.config.settings import settings
from trainlog.parsing.response_repair import fix_double_encoded_properties, parse_trusted_json
from trainlog.schemas.composer import compose_schema
from trainlog.services.llm.model import get_model
from trainlog.services.llm.structured import request_text

WorkoutData = dict[str, Any]

FAILURE_CONFIDENCE = 0.3
HIGH_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.7

NORMALIZATION_PROMPT = """Normalize workout data to match its discipline schema.

KEY NORMALIZATION RULES:
- Match the schema structure exactly, move misplaced fields to their correct locations
- Give every round/exercise entry the same field structure
- Normalize exercise names consistently
- Preserve all data, only restructure (never add placeholders for missing optional values)
- Fix data type inconsistencies (numbers stored as strings, JSON stored as strings)

COMMON FIXES:
- coach_notes or discipline_specific nested inside other objects (move to root)
- discipline data stored under the wrong array field (e.g. phases where exercises are expected)
- mixed time domains (separate strength from metcon)

RESPONSE:
- is_valid: true if there were no issues or every issue was corrected
- normalized_data: the COMPLETE normalized workout
- issues: every issue found, with corrected=true when you fixed it
- confidence: 0.0-1.0
- summary: brief description of what was done"""


class NormalizationIssue(BaseModel):
    type: Literal["structure", "data_quality", "cross_reference"] = "structure"
    severity: Literal["error", "warning"] = "warning"
    field: str
    description: str = ""
    corrected: bool = False


class NormalizationResult(BaseModel):
    """Outcome of a normalization pass."""

    is_valid: bool
    normalized_data: dict[str, Any] = Field(default_factory=dict)
    issues: list[NormalizationIssue] = Field(default_factory=list)
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    summary: str = ""
    normalization_method: Literal["tool", "fallback", "skipped"] = "tool"

    @property
    def any_issue_corrected(self) -> bool:
        return any(issue.corrected for issue in self.issues)


def _build_user_prompt(workout_data: WorkoutData) -> str:
    schema = compose_schema(workout_data.get("discipline") or "")
    return (
        f"SCHEMA:\n{json.dumps(schema)}\n\n"
        f"WORKOUT DATA TO NORMALIZE:\n{json.dumps(workout_data, indent=2, default=str)}"
    )


def _failure_result(workout_data: WorkoutData, error: Exception) -> NormalizationResult:
    return NormalizationResult(
        is_valid=False,
        normalized_data=workout_data,
        issues=[
            NormalizationIssue(
                type="structure",
                severity="error",
                field="normalization",
                description=f"Normalization error: {error}",
                corrected=False,
            )
        ],
        confidence=FAILURE_CONFIDENCE,
        summary="Normalization failed due to system error",
        normalization_method="skipped",
    )


async def _normalize_with_output_type(user_prompt: str) -> NormalizationResult:
    agent = Agent(
        model=get_model(settings.llm_provider, NORMALIZATION_MODEL),
        system_prompt=NORMALIZATION_PROMPT,
        output_type=NormalizationResult,
    )
    result = await agent.run(user_prompt)
    return result.output.model_copy(update={"normalization_method": "tool"})


async def _normalize_with_text(user_prompt: str) -> NormalizationResult:
    raw = await request_text(
        model_name=NORMALIZATION_MODEL,
        system_prompt=f"{NORMALIZATION_PROMPT}\n\nReturn ONLY a JSON object with those fields.",
        user_prompt=user_prompt,
    )
    parsed = parse_trusted_json(raw)
    result = NormalizationResult.model_validate(parsed)
    return result.model_copy(update={"normalization_method": "fallback"})


async def normalize_workout(workout_data: WorkoutData, user_id: str) -> NormalizationResult:
    """Normalize a workout candidate against its discipline schema.

    Never raises: any failure yields an invalid result with confidence 0.3
    that carries the original data unchanged.

    Args:
        workout_data: Workout candidate to normalize
        user_id: Owning user (logging only)

    Returns:
        NormalizationResult
    """
    logger.info(
        "Starting workout normalization",
        user_id=user_id,
        workout_id=workout_data.get("workout_id"),
        discipline=workout_data.get("discipline"),
    )
    user_prompt = _build_user_prompt(workout_data)

    try:
        try:
            result = await _normalize_with_output_type(user_prompt)
        except Exception as e:
            logger.warning(f"Structured normalization failed, using text fallback: {e}")
            result = await _normalize_with_text(user_prompt)
    except Exception as e:
        logger.exception(f"Normalization failed: {e}")
        return _failure_result(workout_data, e)

    normalized = copy.deepcopy(result.normalized_data) if result.normalized_data else copy.deepcopy(workout_data)
    normalized = fix_double_encoded_properties(normalized)
    # System-owned fields are never taken from the model
    for key in ("workout_id", "user_id"):
        if key in workout_data:
            normalized[key] = workout_data[key]

    # A missing verdict with every issue corrected counts as valid
    is_valid = result.is_valid or (bool(result.issues) and all(issue.corrected for issue in result.issues))
    result = result.model_copy(update={"normalized_data": normalized, "is_valid": is_valid})

    logger.info(
        "Normalization completed",
        method=result.normalization_method,
        is_valid=result.is_valid,
        issues=len(result.issues),
        confidence=result.confidence,
    )
    return result


def _has_correct_root_structure(workout_data: WorkoutData) -> bool:
    discipline_specific = workout_data.get("discipline_specific")
    metrics = workout_data.get("performance_metrics")
    misplaced = (
        (isinstance(discipline_specific, dict) and "coach_notes" in discipline_specific)
        or (isinstance(metrics, dict) and "discipline_specific" in metrics)
        or (isinstance(discipline_specific, dict) and "performance_metrics" in discipline_specific)
    )
    if misplaced:
        return False

    return all(workout_data.get(key) is not None for key in ("workout_id", "user_id", "date", "discipline", "metadata"))


def _is_complex_workout(workout_data: WorkoutData) -> bool:
    discipline_specific = workout_data.get("discipline_specific")
    crossfit = discipline_specific.get("crossfit") if isinstance(discipline_specific, dict) else None
    rounds = crossfit.get("rounds") if isinstance(crossfit, dict) else None
    if not isinstance(rounds, list):
        return False

    rounds = [r for r in rounds if isinstance(r, dict)]
    if len(rounds) > 5:
        return True
    if len({r.get("phase") for r in rounds if r.get("phase")}) > 2:
        return True

    exercises = [e for r in rounds for e in (r.get("exercises") or []) if isinstance(e, dict)]
    if len(exercises) > 8:
        return True
    names = {str(e.get("exercise_name")).lower() for e in exercises if e.get("exercise_name")}
    return len(names) > 5


def should_normalize_workout(workout_data: WorkoutData, extraction_confidence: float) -> bool:
    """Decide whether a candidate needs a normalization pass.

    Structural problems always normalize; complex workouts normalize above
    0.7 confidence; simple, well-formed candidates skip above 0.8; anything
    below 0.7 normalizes.
    """
    has_correct_structure = _has_correct_root_structure(workout_data)
    is_complex = _is_complex_workout(workout_data)

    logger.debug(
        "Normalization decision analysis",
        has_correct_structure=has_correct_structure,
        extraction_confidence=extraction_confidence,
        is_complex=is_complex,
        workout_id=workout_data.get("workout_id"),
    )

    if has_correct_structure and extraction_confidence > HIGH_CONFIDENCE and not is_complex:
        return False
    if is_complex and has_correct_structure and extraction_confidence > LOW_CONFIDENCE:
        return True
    if not has_correct_structure:
        return True
    return extraction_confidence < LOW_CONFIDENCE


def generate_normalization_summary(result: NormalizationResult) -> str:
    """Human-readable normalization summary for logs and save metadata."""
    summary = f"Normalization {'PASSED' if result.is_valid else 'FAILED'} (confidence: {result.confidence:.2f})"

    errors = [issue.field for issue in result.issues if issue.severity == "error"]
    warnings = [issue.field for issue in result.issues if issue.severity == "warning"]
    corrections = [issue.field for issue in result.issues if issue.corrected]

    if errors:
        summary += f"\nErrors ({len(errors)}): {', '.join(errors)}"
    if warnings:
        summary += f"\nWarnings ({len(warnings)}): {', '.join(warnings)}"
    if corrections:
        summary += f"\nNormalized ({len(corrections)}): {', '.join(corrections)}"
    return summary
