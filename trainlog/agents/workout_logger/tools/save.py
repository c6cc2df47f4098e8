import time
from datetime import datetime, timezone

from loguru import logger

from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.inputs import SaveWorkoutInput
from trainlog.agents.workout_logger.results import (
    ExtractionResult,
    NormalizationToolResult,
    SaveResult,
    SummaryResult,
    ValidationResult,
)
from trainlog.agents.workout_logger.tools.base import WorkoutLoggerTool, best_workout_data, require_result
from trainlog.config.settings import settings
from trainlog.core.background import spawn_background
from trainlog.core.errors import WorkoutLoggerError
from trainlog.persistence.exercise_queue import enqueue_exercise_extraction
from trainlog.persistence.types import ExerciseExtractionJob, WorkoutSaveRequest


async def _enqueue_exercise_job(job: ExerciseExtractionJob) -> bool:
    return enqueue_exercise_extraction(job)


def build_extraction_metadata(
    workout_data: dict,
    extraction: ExtractionResult,
    normalization: NormalizationToolResult | None,
    context: WorkoutLoggerContext,
) -> dict:
    metadata = workout_data.get("metadata") if isinstance(workout_data.get("metadata"), dict) else {}
    template_comparison = None
    if context.template_context and context.template_context.scaling_analysis:
        template_comparison = context.template_context.scaling_analysis
    return {
        "confidence": metadata.get("data_confidence", 0.5),
        "extracted_at": datetime.now(timezone.utc).isoformat(),
        "reviewed_by": "system",
        "normalization_summary": (
            normalization.normalization_summary if normalization else "No normalization performed"
        ),
        "generation_method": extraction.generation_method,
        "template_comparison": template_comparison,
    }


class SaveWorkoutTool(WorkoutLoggerTool[SaveWorkoutInput]):
    name = "save_workout_to_database"
    description = """Save the workout to the database.

CALL LAST, only after generate_workout_summary, and NEVER when validation returned should_save: false
(the call will be rejected). Uses the best available data for the workout_index and the stored summary.

Returns: workout_id, success, template_linked"""
    input_model = SaveWorkoutInput

    async def execute(self, tool_input: SaveWorkoutInput, context: WorkoutLoggerContext) -> SaveResult:
        index = tool_input.workout_index
        extraction = require_result(context.store, "extraction", index, ExtractionResult)
        require_result(context.store, "validation", index, ValidationResult)
        summary = require_result(context.store, "summary", index, SummaryResult)

        stored_normalization = context.store.read("normalization", index)
        normalization = stored_normalization if isinstance(stored_normalization, NormalizationToolResult) else None
        if normalization and not normalization.is_valid:
            raise WorkoutLoggerError(
                "Cannot save workout - normalization returned invalid data "
                f"(confidence {normalization.normalization_confidence:.2f}, "
                f"{normalization.issues_found} issues found, {normalization.issues_corrected} corrected)"
            )

        workout_data = best_workout_data(context.store, index) or {}
        workout_id = workout_data.get("workout_id")
        discipline = workout_data.get("discipline")
        if not workout_id:
            raise WorkoutLoggerError("Cannot save workout - workout_id is missing from workout data")
        if not discipline:
            raise WorkoutLoggerError("Cannot save workout - discipline is missing from workout data")

        template = context.template_context
        request = WorkoutSaveRequest(
            workout_id=workout_id,
            user_id=context.user_id,
            coach_ids=[context.coach_id],
            conversation_id=context.conversation_id,
            completed_at=extraction.completed_at,
            workout_data=workout_data,
            summary=summary.summary,
            template_id=template.template_id if template else None,
            group_id=template.group_id if template else None,
            extraction_metadata=build_extraction_metadata(workout_data, extraction, normalization, context),
        )

        # PersistenceError propagates to the agent loop as a tool error
        saved_id = await context.repository.save(request)

        search_scheduled = False
        if settings.search_index_enabled:
            spawn_background(context.repository.index_for_search(request), name=f"search-index-{saved_id}")
            search_scheduled = True

        exercise_scheduled = False
        if settings.exercise_extraction_enabled:
            job = ExerciseExtractionJob(
                user_id=context.user_id,
                coach_id=context.coach_id,
                workout_id=saved_id,
                workout_data=workout_data,
                completed_at=extraction.completed_at.isoformat(),
                created_at=time.time(),
            )
            spawn_background(_enqueue_exercise_job(job), name=f"exercise-extraction-{saved_id}")
            exercise_scheduled = True

        template_linked = False
        if template:
            try:
                template_linked = await context.repository.link_to_template(
                    context.user_id, context.coach_id, template, saved_id
                )
            except Exception as e:
                logger.bind(workout_id=saved_id, template_id=template.template_id, error=str(e)).warning(
                    "Template linking failed, workout is still saved"
                )

        logger.info(
            "Workout saved via tool",
            workout_id=saved_id,
            discipline=discipline,
            template_linked=template_linked,
        )
        return SaveResult(
            workout_id=saved_id,
            success=True,
            template_linked=template_linked,
            search_indexing_scheduled=search_scheduled,
            exercise_extraction_scheduled=exercise_scheduled,
        )
