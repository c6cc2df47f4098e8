"""Workout validation helpers.

Deterministic checks (dates, structure, blocking flags, schema shape) plus
the tiered exercise-structure check that only consults the model when the
cheap property checks are inconclusive.
"""

from datetime import date, datetime, timezone
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel

from trainlog.core.errors import ClassificationFailure
from trainlog.schemas.composer import get_expected_array_fields
from trainlog.workouts.classifiers import is_qualitative_workout, validate_exercise_semantics
from trainlog.workouts.scoring import get_discipline_data

WorkoutData = dict[str, Any]

# Structure arrays checked in order; the first non-empty one wins
STRUCTURE_FIELDS = ("phases", "exercises", "rounds", "segments", "stations", "runs", "lifts")

SLASH_COMMAND_BLOCKING_FLAGS: list[str] = []
QUALITATIVE_BLOCKING_FLAGS = ["planning_inquiry", "advice_seeking", "future_planning"]
QUANTITATIVE_BLOCKING_FLAGS = ["planning_inquiry", "no_performance_data", "advice_seeking", "future_planning"]


class ExerciseStructureCheck(BaseModel):
    """Outcome of the exercise-structure check."""

    has_exercises: bool
    method: Literal["property_check", "ai_validation", "qualitative_workout"]
    structure_counts: dict[str, int] = {}
    ai_reasoning: str | None = None
    is_qualitative: bool = False


class SchemaStructureCheck(BaseModel):
    is_valid: bool
    mismatch_reason: str | None = None
    suggested_action: Literal["normalize"] | None = None


class BlockingFlagDecision(BaseModel):
    blocking_flags: list[str]
    detected_blocking_flags: list[str]

    @property
    def has_blocking_flag(self) -> bool:
        return bool(self.detected_blocking_flags)


def ensure_metadata(workout_data: WorkoutData) -> dict[str, Any]:
    """Return ``workout_data['metadata']``, creating it and its flag list if needed."""
    metadata = workout_data.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
        workout_data["metadata"] = metadata
    if not isinstance(metadata.get("validation_flags"), list):
        metadata["validation_flags"] = []
    return metadata


def add_validation_flag(workout_data: WorkoutData, flag: str) -> None:
    flags = ensure_metadata(workout_data)["validation_flags"]
    if flag not in flags:
        flags.append(flag)


def _parse_workout_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def validate_and_correct_workout_date(workout_data: WorkoutData, completed_at: datetime) -> str | None:
    """Correct a workout date whose year is implausible.

    A year outside current +/- 1, or more than one year away from the
    completion time, is replaced by the completion date and the ``date``
    validation flag is added.

    Returns:
        The original date string when a correction was made, else None
    """
    original = workout_data.get("date")
    if not original:
        return None

    workout_date = _parse_workout_date(original)
    current_year = datetime.now(timezone.utc).year
    completed_year = completed_at.year

    if workout_date is not None:
        workout_year = workout_date.year
        is_invalid_year = (
            workout_year < current_year - 1 or workout_year > current_year + 1 or abs(workout_year - completed_year) > 1
        )
        if not is_invalid_year:
            return None
        logger.warning(
            "Workout date in wrong year, correcting",
            original_date=original,
            workout_year=workout_year,
            completed_year=completed_year,
            current_year=current_year,
        )
    else:
        logger.warning("Unparseable workout date, correcting", original_date=original)

    workout_data["date"] = completed_at.date().isoformat()
    add_validation_flag(workout_data, "date")
    return str(original)


def validate_qualitative_workout(workout_data: WorkoutData) -> tuple[bool, str]:
    """Check a qualitative workout has an activity and a completion indicator.

    Returns:
        Tuple of (is_valid, reason)
    """
    if not (workout_data.get("workout_name") or workout_data.get("workout_type") or workout_data.get("discipline")):
        return False, "No activity name, type, or discipline specified"

    metrics = workout_data.get("performance_metrics") or {}
    feedback = workout_data.get("subjective_feedback") or {}
    has_completion_indicator = bool(
        workout_data.get("duration")
        or workout_data.get("session_duration")
        or (isinstance(metrics, dict) and metrics.get("calories_burned"))
        or (isinstance(feedback, dict) and (feedback.get("enjoyment") or feedback.get("notes")))
        or workout_data.get("date")
    )
    if not has_completion_indicator:
        return False, "No completion indicator (duration, date, feedback, etc.)"

    return True, "Qualitative workout has sufficient data for logging"


def count_structures(discipline_data: dict[str, Any] | None) -> dict[str, int]:
    if not discipline_data:
        return {}
    return {
        field: len(discipline_data[field])
        for field in STRUCTURE_FIELDS
        if isinstance(discipline_data.get(field), list) and discipline_data[field]
    }


async def validate_exercise_structure(workout_data: WorkoutData, user_message: str | None = None) -> ExerciseStructureCheck:
    """Check the workout holds exercise or activity structure.

    Tier 1: structural arrays (phases, exercises, rounds, segments, stations,
    runs, lifts). Tier 2: qualitative activity check. Tier 3: semantic model
    judgment, with a permissive fallback if that call errors.
    """
    discipline = workout_data.get("discipline")
    discipline_data = get_discipline_data(workout_data)

    counts = count_structures(discipline_data)
    if counts:
        logger.info("Exercise structure validated via property check", discipline=discipline, **counts)
        return ExerciseStructureCheck(has_exercises=True, method="property_check", structure_counts=counts)

    try:
        qualitative = await is_qualitative_workout(workout_data, user_message)
    except ClassificationFailure as e:
        logger.warning(f"Qualitative check failed, treating as quantitative: {e.message}")
        qualitative = None

    if qualitative is not None and qualitative.is_qualitative:
        is_valid, validation_reason = validate_qualitative_workout(workout_data)
        if is_valid:
            logger.info(
                "Qualitative workout validated, no exercise structure required",
                discipline=discipline,
                reason=qualitative.reason,
            )
            return ExerciseStructureCheck(
                has_exercises=True,
                method="qualitative_workout",
                ai_reasoning=f"Qualitative workout: {qualitative.reason}. {validation_reason}",
                is_qualitative=True,
            )
        logger.warning("Qualitative workout missing required data", reason=validation_reason)

    if not discipline_data:
        logger.warning("No exercise structure found, discipline data is empty", discipline=discipline)
        return ExerciseStructureCheck(has_exercises=False, method="property_check")

    logger.info(
        "Using semantic validation for exercise structure",
        discipline=discipline,
        discipline_keys=list(discipline_data.keys()),
    )
    try:
        semantic = await validate_exercise_semantics(workout_data, discipline_data)
    except ClassificationFailure as e:
        logger.error(f"Semantic validation failed, using fallback indicators: {e.message}")
        has_fallback_indicators = bool(
            workout_data.get("duration") or workout_data.get("session_duration") or workout_data.get("performance_metrics")
        )
        return ExerciseStructureCheck(
            has_exercises=has_fallback_indicators,
            method="property_check",
            ai_reasoning="Semantic validation failed, used fallback logic",
        )

    return ExerciseStructureCheck(
        has_exercises=semantic.has_exercises,
        method="ai_validation",
        ai_reasoning=semantic.reasoning,
    )


def determine_blocking_flags(
    workout_data: WorkoutData,
    is_slash_command: bool,
    is_qualitative_discipline: bool,
) -> BlockingFlagDecision:
    """Pick the blocking set for this origin/discipline and intersect it with the candidate's flags."""
    if is_slash_command:
        blocking_flags = list(SLASH_COMMAND_BLOCKING_FLAGS)
    elif is_qualitative_discipline:
        blocking_flags = list(QUALITATIVE_BLOCKING_FLAGS)
    else:
        blocking_flags = list(QUANTITATIVE_BLOCKING_FLAGS)

    validation_flags = ensure_metadata(workout_data)["validation_flags"]
    detected = [flag for flag in validation_flags if flag in blocking_flags]
    return BlockingFlagDecision(blocking_flags=blocking_flags, detected_blocking_flags=detected)


def build_blocking_reason(
    detected_blocking_flags: list[str],
    is_slash_command: bool,
    is_qualitative_discipline: bool,
) -> str:
    if is_slash_command:
        return "Unable to extract any workout information from slash command content"
    if "no_performance_data" in detected_blocking_flags and not is_qualitative_discipline:
        return "No performance data found for strength/power workout"
    return "Not a workout log - appears to be planning/advice seeking"


def validate_schema_structure(workout_data: WorkoutData) -> SchemaStructureCheck:
    """Check the discipline data uses the array fields its schema expects.

    Catches valid-looking data in the wrong shape, e.g. ``phases`` where the
    schema expects ``exercises``.
    """
    discipline = workout_data.get("discipline")
    discipline_specific = workout_data.get("discipline_specific")
    discipline_data = discipline_specific.get(discipline) if isinstance(discipline_specific, dict) else None
    if not isinstance(discipline_data, dict):
        return SchemaStructureCheck(is_valid=False, mismatch_reason="discipline_specific key missing")

    expected = get_expected_array_fields(discipline)
    if not expected:
        return SchemaStructureCheck(is_valid=True)

    if any(isinstance(discipline_data.get(field), list) and discipline_data[field] for field in expected):
        return SchemaStructureCheck(is_valid=True)

    actual = [key for key, value in discipline_data.items() if isinstance(value, list) and value]
    if not actual:
        return SchemaStructureCheck(is_valid=True)

    logger.warning("Schema structure mismatch detected", discipline=discipline, expected=expected, actual=actual)
    return SchemaStructureCheck(
        is_valid=False,
        mismatch_reason=f"Expected {' or '.join(expected)} but found {', '.join(actual)}",
        suggested_action="normalize",
    )
