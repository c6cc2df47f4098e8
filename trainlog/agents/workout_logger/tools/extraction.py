from datetime import datetime, timezone

from loguru import logger

from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.inputs import ExtractWorkoutInput
from trainlog.agents.workout_logger.results import DisciplineResult, ExtractionResult
from trainlog.agents.workout_logger.tools.base import WorkoutLoggerTool
from trainlog.core.errors import PreconditionError
from trainlog.workouts.extraction import (
    apply_performance_metric_defaults,
    extract_structured_workout,
    generate_workout_id,
)
from trainlog.workouts.time_extraction import extract_completed_at


def resolve_discipline(tool_input: ExtractWorkoutInput, context: WorkoutLoggerContext) -> str:
    """Discipline for this extraction: the explicit parameter, else the detected one.

    Raises:
        PreconditionError: If no discipline was passed and none was detected
    """
    if tool_input.discipline:
        return tool_input.discipline

    detection = context.store.read("discipline", tool_input.workout_index)
    if not isinstance(detection, DisciplineResult):
        detection = context.store.read("discipline")
    if isinstance(detection, DisciplineResult):
        return detection.discipline

    raise PreconditionError(
        "detect_discipline",
        "Discipline detection",
        "discipline parameter is required - call detect_discipline first",
    )


class ExtractWorkoutDataTool(WorkoutLoggerTool[ExtractWorkoutInput]):
    name = "extract_workout_data"
    description = """Extract structured workout data from the user's message.

CALL SECOND, after detect_discipline, and ONLY for COMPLETED workouts (never for planning questions).
Pass the discipline returned by detect_discipline.

Handles slash commands and natural language, and determines when the workout was completed.

Returns: workout_data, completed_at, generation_method"""
    input_model = ExtractWorkoutInput

    async def execute(self, tool_input: ExtractWorkoutInput, context: WorkoutLoggerContext) -> ExtractionResult:
        discipline = resolve_discipline(tool_input, context)
        logger.info("Using discipline for targeted extraction", discipline=discipline)

        workout_data, generation_method = await extract_structured_workout(
            discipline=discipline,
            user_message=tool_input.user_message,
            user_timezone=context.user_timezone,
            message_timestamp=context.message_timestamp,
            is_slash_command=context.is_slash_command,
            image_refs=context.image_refs,
        )

        # System-owned fields, never taken from the model
        workout_data["workout_id"] = generate_workout_id(context.user_id)
        workout_data["user_id"] = context.user_id
        apply_performance_metric_defaults(workout_data)

        metadata = workout_data.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
            workout_data["metadata"] = metadata
        metadata["generation_method"] = generation_method
        metadata["generation_timestamp"] = datetime.now(timezone.utc).isoformat()

        if context.is_slash_command:
            metadata["logged_via"] = "slash_command"
            note = f"User explicitly logged workout using /{context.slash_command or 'log-workout'} command."
            existing = metadata.get("extraction_notes")
            metadata["extraction_notes"] = f"{existing} {note}" if existing else note

        extracted_time = await extract_completed_at(
            tool_input.user_message,
            context.message_timestamp,
            context.user_timezone,
        )
        completed_at = extracted_time or datetime.now(timezone.utc)

        logger.info(
            "Extraction completed",
            method=generation_method,
            workout_id=workout_data["workout_id"],
            discipline=workout_data.get("discipline"),
            workout_name=workout_data.get("workout_name"),
            completed_at=completed_at.isoformat(),
        )
        return ExtractionResult(
            workout_data=workout_data,
            completed_at=completed_at,
            generation_method=generation_method,
            user_message=tool_input.user_message,
        )
