import copy

from loguru import logger

from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.inputs import ValidateWorkoutInput
from trainlog.agents.workout_logger.results import ExtractionResult, ValidationResult
from trainlog.agents.workout_logger.tools.base import WorkoutLoggerTool, require_result
from trainlog.core.errors import ClassificationFailure
from trainlog.parsing.response_repair import fix_double_encoded_properties
from trainlog.workouts.classifiers import QUANTITATIVE_DEFAULT, classify_workout_characteristics
from trainlog.workouts.extraction import find_double_encoded_fields
from trainlog.workouts.normalization import should_normalize_workout
from trainlog.workouts.scoring import calculate_completeness, calculate_confidence
from trainlog.workouts.validation_helpers import (
    add_validation_flag,
    build_blocking_reason,
    determine_blocking_flags,
    ensure_metadata,
    validate_and_correct_workout_date,
    validate_exercise_structure,
    validate_schema_structure,
)

MIN_COMPLETENESS = 0.2


class ValidateWorkoutCompletenessTool(WorkoutLoggerTool[ValidateWorkoutInput]):
    name = "validate_workout_completeness"
    description = """Validate extracted workout data and decide the next steps.

ALWAYS CALL THIS after extract_workout_data. It re-reads the extraction result itself;
pass only workout_index.

Checks completeness and confidence scores, corrects implausible dates, classifies the discipline
(qualitative vs quantitative) and detects blocking flags (planning, advice seeking, insufficient data).

Returns: should_save, should_normalize, confidence, completeness, blocking_flags, reason.
should_save=false is FINAL: do not normalize or save this workout, and do not validate it again."""
    input_model = ValidateWorkoutInput

    async def execute(self, tool_input: ValidateWorkoutInput, context: WorkoutLoggerContext) -> ValidationResult:
        extraction = require_result(context.store, "extraction", tool_input.workout_index, ExtractionResult)
        workout_data = copy.deepcopy(extraction.workout_data)

        double_encoded = find_double_encoded_fields(workout_data)
        if double_encoded:
            logger.warning("Double-encoded fields at validation time", fields=double_encoded)
        workout_data = fix_double_encoded_properties(workout_data)

        confidence = calculate_confidence(workout_data)
        completeness = calculate_completeness(workout_data)
        logger.info("Confidence and completeness scores", confidence=confidence, completeness=completeness)

        metadata = ensure_metadata(workout_data)
        metadata["data_confidence"] = confidence
        metadata["data_completeness"] = completeness

        original_date = validate_and_correct_workout_date(workout_data, extraction.completed_at)

        try:
            characteristics = await classify_workout_characteristics(workout_data.get("discipline") or "", workout_data)
        except ClassificationFailure as e:
            logger.warning(f"Failed to classify discipline, defaulting to quantitative: {e.message}")
            characteristics = QUANTITATIVE_DEFAULT
        is_qualitative = characteristics.is_qualitative

        decision = determine_blocking_flags(workout_data, context.is_slash_command, is_qualitative)

        def blocked(flag: str, reason: str, method: str | None = None) -> ValidationResult:
            return ValidationResult(
                is_valid=False,
                should_save=False,
                should_normalize=False,
                confidence=confidence,
                completeness=completeness,
                blocking_flags=[flag],
                validation_flags=list(metadata["validation_flags"]),
                reason=reason,
                workout_data=workout_data,
                original_date=original_date,
                exercise_check_method=method,
                is_qualitative=is_qualitative,
            )

        if completeness < MIN_COMPLETENESS:
            logger.warning(
                "Blocking workout due to low completeness",
                completeness=completeness,
                confidence=confidence,
                workout_id=workout_data.get("workout_id"),
            )
            return blocked(
                "insufficient_data",
                "Workout appears to be a reflection or comment without actual exercise data (completeness < 20%)",
            )

        exercise_check = await validate_exercise_structure(workout_data, extraction.user_message)
        if not exercise_check.has_exercises:
            logger.warning(
                "Blocking workout due to missing exercise structure",
                discipline=workout_data.get("discipline"),
                method=exercise_check.method,
                ai_reasoning=exercise_check.ai_reasoning,
            )
            return blocked(
                "no_exercise_data",
                "No exercise structure found in workout data - unable to log workout without exercises or rounds",
                exercise_check.method,
            )

        force_normalization = False
        schema_check = validate_schema_structure(workout_data)
        if not schema_check.is_valid and schema_check.suggested_action == "normalize":
            logger.warning("Schema structure mismatch, forcing normalization", reason=schema_check.mismatch_reason)
            add_validation_flag(workout_data, "schema_mismatch")
            force_normalization = True

        should_normalize = force_normalization or should_normalize_workout(workout_data, confidence)
        reason = (
            build_blocking_reason(decision.detected_blocking_flags, context.is_slash_command, is_qualitative)
            if decision.has_blocking_flag
            else None
        )

        result = ValidationResult(
            is_valid=not decision.has_blocking_flag,
            should_save=not decision.has_blocking_flag,
            should_normalize=should_normalize,
            confidence=confidence,
            completeness=completeness,
            blocking_flags=decision.detected_blocking_flags,
            validation_flags=list(metadata["validation_flags"]),
            reason=reason,
            workout_data=workout_data,
            original_date=original_date,
            exercise_check_method=exercise_check.method,
            is_qualitative=is_qualitative,
        )
        logger.info(
            "Validation result",
            should_save=result.should_save,
            should_normalize=result.should_normalize,
            confidence=confidence,
            completeness=completeness,
            blocking_flags=result.blocking_flags,
        )
        return result
