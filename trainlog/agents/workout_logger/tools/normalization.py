from loguru import logger

from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.inputs import NormalizeWorkoutInput
from trainlog.agents.workout_logger.results import ExtractionResult, NormalizationToolResult, ValidationResult
from trainlog.agents.workout_logger.tools.base import WorkoutLoggerTool
from trainlog.core.errors import PreconditionError
from trainlog.workouts.normalization import generate_normalization_summary, normalize_workout
from trainlog.workouts.validation_helpers import ensure_metadata

CONFIDENCE_NUDGE = 0.1


def nudge_confidence(original: float, normalization_confidence: float) -> float:
    """Raise confidence by at most 0.1, never above the normalization's own confidence."""
    if normalization_confidence <= original:
        return original
    return min(original + CONFIDENCE_NUDGE, normalization_confidence)


class NormalizeWorkoutDataTool(WorkoutLoggerTool[NormalizeWorkoutInput]):
    name = "normalize_workout_data"
    description = """Normalize workout data to fix structural issues and improve data quality.

ONLY call this when validate_workout_completeness returned should_normalize: true.
Never call it when validation returned should_save: false. It re-reads the validated
(or extracted) data itself; pass only workout_index.

Returns: normalized_data, is_valid, issues_found, issues_corrected, normalization_summary"""
    input_model = NormalizeWorkoutInput

    async def execute(
        self, tool_input: NormalizeWorkoutInput, context: WorkoutLoggerContext
    ) -> NormalizationToolResult:
        validation = context.store.read("validation", tool_input.workout_index)
        extraction = context.store.read("extraction", tool_input.workout_index)
        if isinstance(validation, ValidationResult):
            workout_data = validation.workout_data
            original_confidence = validation.confidence
        elif isinstance(extraction, ExtractionResult):
            workout_data = extraction.workout_data
            original_confidence = float(ensure_metadata(workout_data).get("data_confidence") or 0.0)
        else:
            raise PreconditionError("extract_workout_data", "Extraction")

        result = await normalize_workout(workout_data, context.user_id)
        normalization_summary = generate_normalization_summary(result)
        issues_corrected = sum(1 for issue in result.issues if issue.corrected)

        if result.is_valid or result.any_issue_corrected:
            final_data = result.normalized_data
            metadata = ensure_metadata(final_data)
            metadata["data_confidence"] = nudge_confidence(original_confidence, result.confidence)
            metadata["normalization_applied"] = True
            for issue in result.issues:
                if issue.field not in metadata["validation_flags"]:
                    metadata["validation_flags"].append(issue.field)
        else:
            final_data = workout_data
            logger.warning(
                "Normalization did not produce a usable result, keeping original data",
                issues=len(result.issues),
                confidence=result.confidence,
            )

        logger.info(
            "Normalization tool completed",
            is_valid=result.is_valid,
            issues_found=len(result.issues),
            issues_corrected=issues_corrected,
        )
        return NormalizationToolResult(
            normalized_data=final_data,
            is_valid=result.is_valid,
            issues=result.issues,
            issues_found=len(result.issues),
            issues_corrected=issues_corrected,
            normalization_summary=normalization_summary,
            normalization_confidence=result.confidence,
            normalization_method=result.normalization_method,
        )
