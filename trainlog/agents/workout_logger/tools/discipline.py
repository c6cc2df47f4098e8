from loguru import logger

from trainlog.agents.workout_logger.context import WorkoutLoggerContext
from trainlog.agents.workout_logger.inputs import DetectDisciplineInput
from trainlog.agents.workout_logger.results import DisciplineResult
from trainlog.agents.workout_logger.tools.base import WorkoutLoggerTool
from trainlog.workouts.discipline_detector import detect_discipline


class DetectDisciplineTool(WorkoutLoggerTool[DetectDisciplineInput]):
    name = "detect_discipline"
    description = """Detect the primary training discipline of the workout.

ALWAYS CALL THIS FIRST, before extract_workout_data.

Disciplines: crossfit, powerlifting, bodybuilding, olympic_weightlifting, functional_bodybuilding,
calisthenics, hyrox, running, circuit_training, hybrid (mixed-modality or general fitness).
Low-confidence detections (below 0.65) fall back to "hybrid".

Returns: discipline, confidence (0-1), method, reasoning"""
    input_model = DetectDisciplineInput

    async def execute(self, tool_input: DetectDisciplineInput, context: WorkoutLoggerContext) -> DisciplineResult:
        logger.info("Running discipline detection", message_length=len(tool_input.user_message))
        # detect_discipline recovers from classifier failures with the hybrid default
        detection = await detect_discipline(tool_input.user_message)
        return DisciplineResult(
            discipline=detection.discipline,
            confidence=detection.confidence,
            method=detection.method,
            reasoning=detection.reasoning,
        )
