from loguru import logger

from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.inputs import GenerateSummaryInput
from trainlog.agents.workout_logger.results import SummaryResult
from trainlog.agents.workout_logger.tools.base import WorkoutLoggerTool, best_workout_data
from trainlog.core.errors import PreconditionError
from trainlog.workouts.summary import generate_workout_summary


class GenerateWorkoutSummaryTool(WorkoutLoggerTool[GenerateSummaryInput]):
    name = "generate_workout_summary"
    description = """Generate a short natural-language summary of the workout.

REQUIRED BEFORE save_workout_to_database. Uses the best available data
(normalized, then validated, then extracted) for the given workout_index.

Returns: summary"""
    input_model = GenerateSummaryInput

    async def execute(self, tool_input: GenerateSummaryInput, context: WorkoutLoggerContext) -> SummaryResult:
        workout_data = best_workout_data(context.store, tool_input.workout_index)
        if workout_data is None:
            raise PreconditionError(
                "extract_workout_data",
                "Extraction",
                "No workout data available - call extract_workout_data first",
            )

        summary = await generate_workout_summary(workout_data, tool_input.original_message)
        logger.info("Generated workout summary", length=len(summary))
        return SummaryResult(summary=summary)
